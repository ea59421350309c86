# icao_verify/clients/ninjas.py
import asyncio
import logging
from typing import Any, Optional

import aiohttp

from icao_verify import config
from icao_verify.clients import http
from icao_verify.core.errors import DetectionUnavailable

log = logging.getLogger(__name__)


class ApiNinjasFaceDetector:
    """Hosted face detection (api-ninjas.com ``/v1/facedetect``).

    Answers with a JSON list of ``{x, y, width, height}`` boxes.
    """

    def __init__(self, api_key: str, url: Optional[str] = None,
                 timeout: Optional[float] = None):
        if not api_key:
            raise ValueError("api_key is required")
        self._url = url
        self._timeout = timeout
        self._headers = {"X-Api-Key": api_key}

    @property
    def url(self) -> str:
        return self._url or config.API_NINJAS_URL

    @property
    def timeout(self) -> float:
        return self._timeout if self._timeout is not None else config.DETECTION_TIMEOUT_S

    async def detect(self, image: bytes) -> Any:
        try:
            status, body = await http.post_form(
                self.url, {"image": image}, headers=self._headers, timeout=self.timeout
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DetectionUnavailable(f"face detection request failed: {e!r}") from e

        if status != 200:
            raise DetectionUnavailable(f"face detection returned HTTP {status}")
        log.debug("api_ninjas_response", extra={"status": status, "type": type(body).__name__})
        return body
