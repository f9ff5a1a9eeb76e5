"""
Data types passed between the stages of the render pipeline.
"""
import base64
import io
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from PIL import Image
from pydantic import BaseModel, ValidationError

from html_render_service.core.exceptions import RenderError


class ContentType(str, Enum):
    RAW_MARKUP = "RawMarkup"
    ENVELOPED_JSON = "EnvelopedJSON"


class RenderEnvelope(BaseModel):
    """A structured wrapper `{"html": "<markup>"}` around the document to render."""
    html: str


@dataclass(frozen=True)
class RenderRequest:
    """
    One inbound document to render.

    Attributes:
        content (str): The request body as received.
        content_type (ContentType): Whether `content` is a JSON envelope or raw markup.
    """
    content: str
    content_type: ContentType = ContentType.RAW_MARKUP

    @classmethod
    def from_body(cls, body: Optional[str]) -> 'RenderRequest':
        """
        Classifies a request body, speculatively parsing it as an envelope first.

        Anything that does not validate as an envelope (invalid JSON, a JSON
        array, a missing or non-string `html` field) is treated as raw markup.
        """
        text = body or ""
        if parse_envelope(text) is not None:
            return cls(content=text, content_type=ContentType.ENVELOPED_JSON)
        return cls(content=text, content_type=ContentType.RAW_MARKUP)

    @property
    def effective_markup(self) -> str:
        """The markup to render: the envelope's `html`, or the content verbatim."""
        if self.content_type is ContentType.ENVELOPED_JSON:
            envelope = parse_envelope(self.content)
            if envelope is not None:
                return envelope.html
        return self.content


def parse_envelope(text: str) -> Optional[RenderEnvelope]:
    """Returns the parsed envelope, or None if `text` is not one."""
    if not text:
        return None
    try:
        return RenderEnvelope.model_validate_json(text)
    except ValidationError:
        return None


@dataclass(frozen=True)
class ReadinessResult:
    """
    A single reading of the loaded document's size.

    Attributes:
        text_length (int): Length of the body's visible text.
        markup_length (int): Length of the serialized document markup.
        attempt (int): 1 for the first reading, 2 for the extension reading.
        satisfied (bool): Whether the reading cleared the minimal-content threshold.
        probe_error (Optional[str]): Set when the document could not be read at all.
    """
    text_length: int
    markup_length: int
    attempt: int
    satisfied: bool = False
    probe_error: Optional[str] = None


@dataclass
class RenderResult:
    """
    Outcome of one render request: PNG bytes or a classified `RenderError`, never both.
    """
    image: Optional[bytes] = None
    error: Optional[RenderError] = None
    executable_path: Optional[str] = None
    readiness: Optional[ReadinessResult] = None
    duration_ms: Optional[float] = None

    def __post_init__(self) -> None:
        if (self.image is None) == (self.error is None):
            raise ValueError("RenderResult must hold exactly one of image or error.")

    @classmethod
    def success(cls, image: bytes, **kwargs) -> 'RenderResult':
        return cls(image=image, **kwargs)

    @classmethod
    def failure(cls, error: RenderError, **kwargs) -> 'RenderResult':
        return cls(error=error, **kwargs)

    @property
    def ok(self) -> bool:
        return self.image is not None

    @property
    def http_status(self) -> int:
        if self.error is not None:
            return self.error.http_status
        return 200

    @property
    def image_base64(self) -> Optional[str]:
        if self.image is None:
            return None
        return base64.b64encode(self.image).decode("ascii")

    @property
    def image_size(self) -> Optional[Tuple[int, int]]:
        """(width, height) read from the PNG header, or None if there is no readable image."""
        if self.image is None:
            return None
        try:
            with Image.open(io.BytesIO(self.image)) as img:
                return img.size
        except (OSError, ValueError):
            return None
