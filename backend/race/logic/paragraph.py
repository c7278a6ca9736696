"""Race text providers.

A provider never fails the caller: any problem fetching remote text is logged
and answered with FALLBACK_PARAGRAPH, so a round can always start.
"""

from abc import ABC, abstractmethod

import httpx
import structlog

logger = structlog.get_logger()

DEFAULT_PARAGRAPH_URL = "http://metaphorpsum.com/paragraphs/10"
DEFAULT_TIMEOUT_SECONDS = 5.0

FALLBACK_PARAGRAPH = (
    "In a quiet little town, there was a small park filled with vibrant flowers and tall trees. "
    "Children played happily on swings and slides while their laughter echoed through the air. "
    "Nearby, a gentle stream flowed, reflecting the blue sky above. "
    "Every afternoon, people gathered to enjoy picnics on the grassy hills. "
    "Some brought sandwiches, while others shared fruit and cookies. "
    "As the sun began to set, the sky turned shades of orange and pink. "
    "Families packed up their things and headed home, cherishing the moments spent together. "
    "In this peaceful place, time seemed to slow down, allowing everyone to appreciate the beauty of nature. "
    "The birds chirped sweet melodies, and the breeze carried the scent of blooming flowers. "
    "It was a perfect day, filled with joy and laughter, reminding everyone of the simple pleasures "
    "that life has to offer."
)


class ParagraphProvider(ABC):
    """Source of the text for a race round."""

    @abstractmethod
    async def fetch_paragraph(self) -> str:
        """Return a non-empty race text. Must not raise."""
        ...


class StaticParagraphProvider(ParagraphProvider):
    def __init__(self, text: str = FALLBACK_PARAGRAPH) -> None:
        if not text.strip():
            raise ValueError("paragraph text must not be empty")
        self._text = text

    async def fetch_paragraph(self) -> str:
        return self._text


def normalize_paragraph(body: str) -> str:
    """Join the remote service's newline-separated paragraphs into one line."""
    return " ".join(line.strip() for line in body.splitlines() if line.strip())


class RemoteParagraphProvider(ParagraphProvider):
    def __init__(
        self,
        url: str = DEFAULT_PARAGRAPH_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def fetch_paragraph(self) -> str:
        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                response = await client.get(self._url)
        except httpx.HTTPError as e:
            logger.warning("paragraph fetch failed, using fallback", url=self._url, error=str(e))
            return FALLBACK_PARAGRAPH
        except Exception:
            # InvalidURL and other non-transport errors are not HTTPError subclasses
            logger.exception("paragraph fetch raised, using fallback", url=self._url)
            return FALLBACK_PARAGRAPH

        if not response.is_success:
            logger.warning("paragraph fetch failed, using fallback", url=self._url, status=response.status_code)
            return FALLBACK_PARAGRAPH

        paragraph = normalize_paragraph(response.text)
        if not paragraph:
            logger.warning("paragraph service returned empty text, using fallback", url=self._url)
            return FALLBACK_PARAGRAPH
        return paragraph
