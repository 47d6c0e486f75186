"""Pydantic data contracts for OCR classifiers and their responses.

The response models follow the Azure Computer Vision OCR (v3.2) payload: regions contain
lines, lines contain words, and every element carries a "x,y,w,h" bounding box string.
"""

from pydantic import BaseModel, ConfigDict, Field


class ClassifierCard(BaseModel):
    """Metadata identifying an OCR backend."""

    name: str
    version: str


class _OcrElement(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    bounding_box: str = Field(default="", alias="boundingBox")


class OcrWord(_OcrElement):
    text: str = ""


class OcrLine(_OcrElement):
    words: list[OcrWord] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(w.text for w in self.words if w.text)


class OcrRegion(_OcrElement):
    lines: list[OcrLine] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(line.text for line in self.lines)


class ClassificationResult(BaseModel):
    """Parsed OCR response for one image. Only `regions` decides whether a frame is relevant."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    language: str | None = None
    text_angle: float | None = Field(default=None, alias="textAngle")
    orientation: str | None = None
    regions: list[OcrRegion] = Field(default_factory=list)

    @property
    def has_regions(self) -> bool:
        return len(self.regions) > 0

    @property
    def text(self) -> str:
        return "\n".join(r.text for r in self.regions if r.text)

    def raw(self) -> dict:
        """Return the response as the service sent it (original key names, unknown fields kept)."""
        return self.model_dump(by_alias=True, exclude_none=True)
