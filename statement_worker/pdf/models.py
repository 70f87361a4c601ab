from dataclasses import dataclass


@dataclass(frozen=True)
class PdfText:
    """Locally extracted PDF text plus the page count it came from."""

    text: str
    page_count: int

    @property
    def chars_per_page(self) -> int:
        if self.page_count <= 0:
            return 0
        return round(len(self.text.strip()) / self.page_count)
