"""OCR classifier backed by the Azure Computer Vision OCR endpoint (v3.2).

Posts the raw image bytes and parses the JSON response into ClassificationResult. Uses a
persistent requests.Session with connection pooling, since a scan fires one request per
sampled frame and several of them are in flight at once.
"""

import logging
from pathlib import Path

import requests
from pydantic import ValidationError

from framescan.ocr.classifier_base import BaseOcrClassifier, ClassifierError
from framescan.ocr.schema import ClassificationResult, ClassifierCard

_log = logging.getLogger(__name__)

OCR_API_VERSION = "v3.2"
OCR_PATH = f"vision/{OCR_API_VERSION}/ocr"
SUBSCRIPTION_KEY_HEADER = "Ocp-Apim-Subscription-Key"


class AzureOcrClassifier(BaseOcrClassifier):
    """Classifier that calls Azure Computer Vision OCR. One blocking HTTP request per image."""

    def __init__(
        self,
        endpoint: str,
        subscription_key: str,
        *,
        language: str = "unk",
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not subscription_key:
            raise ValueError("Azure OCR requires a subscription key (set OCR_SUBSCRIPTION_KEY)")
        self._url = f"{endpoint.rstrip('/')}/{OCR_PATH}"
        self._subscription_key = subscription_key
        self._language = language
        self._timeout = timeout
        if session is None:
            session = requests.Session()
            adapter = requests.adapters.HTTPAdapter(pool_connections=10, pool_maxsize=20)
            session.mount("http://", adapter)
            session.mount("https://", adapter)
        self._session = session

    def get_classifier_card(self) -> ClassifierCard:
        return ClassifierCard(name="azure-ocr", version=OCR_API_VERSION)

    def _post_image(self, image_bytes: bytes) -> dict:
        """POST image bytes to the OCR endpoint and return the decoded JSON body."""
        resp = self._session.post(
            self._url,
            params={"language": self._language, "detectOrientation": "true"},
            headers={
                "Content-Type": "application/octet-stream",
                SUBSCRIPTION_KEY_HEADER: self._subscription_key,
            },
            data=image_bytes,
            timeout=self._timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def classify(self, image_path: Path) -> ClassificationResult:
        image_path = Path(image_path)
        try:
            image_bytes = image_path.read_bytes()
        except OSError as e:
            raise ClassifierError(f"Cannot read image {image_path}: {e}", image_path) from e

        try:
            body = self._post_image(image_bytes)
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise ClassifierError(f"OCR request for {image_path} failed with HTTP {status}", image_path) from e
        except requests.RequestException as e:
            raise ClassifierError(f"OCR request for {image_path} failed: {e}", image_path) from e
        except ValueError as e:
            raise ClassifierError(f"OCR response for {image_path} is not valid JSON", image_path) from e

        if not isinstance(body, dict):
            raise ClassifierError(f"OCR response for {image_path} is not a JSON object", image_path)
        try:
            result = ClassificationResult.model_validate(body)
        except ValidationError as e:
            raise ClassifierError(f"OCR response for {image_path} has unexpected shape: {e}", image_path) from e
        _log.debug("OCR %s: %d region(s)", image_path.name, len(result.regions))
        return result
