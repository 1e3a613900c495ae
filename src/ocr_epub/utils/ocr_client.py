"""
OCR provider client.

Calls the Mistral OCR API and parses its response into an OcrResult.
No retries or rate limiting are performed here.
"""

import logging
from typing import Any, Dict, Optional

import requests

from .io import bytes_to_base64, get_document_type, get_mime_type
from .models import OcrOptions, OcrRequestError, OcrResult

logger = logging.getLogger(__name__)


class MistralOcrClient:
    """Document OCR using the Mistral API."""

    API_URL = "https://api.mistral.ai/v1/ocr"
    MODEL = "mistral-ocr-latest"

    def __init__(
        self,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 300.0,
        session: Optional[requests.Session] = None
    ):
        self.api_url = api_url or self.API_URL
        self.model = model or self.MODEL
        self.timeout = timeout
        self.session = session or requests.Session()

    def build_payload(
        self,
        file_bytes: bytes,
        file_name: str,
        options: Optional[OcrOptions] = None
    ) -> Dict[str, Any]:
        """Build the JSON request body for a document."""
        options = options or OcrOptions()
        doc_type = get_document_type(file_name)
        data_url = f"data:{get_mime_type(file_name)};base64,{bytes_to_base64(file_bytes)}"

        return {
            "model": self.model,
            "document": {
                "type": doc_type,
                doc_type: data_url
            },
            "include_image_base64": True,
            "table_format": "markdown",
            # Extracted headers/footers are returned separately instead of in the page text
            "extract_header": options.exclude_headers,
            "extract_footer": options.exclude_footers
        }

    def perform_ocr(
        self,
        file_bytes: bytes,
        file_name: str,
        api_key: Optional[str],
        options: Optional[OcrOptions] = None
    ) -> OcrResult:
        """
        Run OCR on a document.

        Args:
            file_bytes: Raw document bytes
            file_name: Original file name (drives document and MIME type)
            api_key: Mistral API key
            options: Header/footer extraction options

        Returns:
            Parsed OcrResult

        Raises:
            OcrRequestError: On a missing key, network error or non-success response
        """
        if not api_key:
            raise OcrRequestError("Missing OCR API key")

        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}"
        }
        payload = self.build_payload(file_bytes, file_name, options)

        logger.info(f"Sending {file_name} ({len(file_bytes)} bytes) to OCR")
        try:
            response = self.session.post(
                self.api_url,
                headers=headers,
                json=payload,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise OcrRequestError(f"OCR request failed: {e}") from e

        if not response.ok:
            raise OcrRequestError(self._error_message(response))

        try:
            data = response.json()
        except ValueError as e:
            raise OcrRequestError(f"OCR returned invalid JSON: {e}") from e

        result = OcrResult.from_dict(data)
        logger.info(f"OCR returned {len(result.pages)} page(s)")
        return result

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            error = response.json()
        except ValueError:
            error = {}
        if not isinstance(error, dict):
            error = {}
        message = error.get("message") or error.get("detail")
        if message and not isinstance(message, str):
            message = str(message)
        return message or f"OCR failed: {response.status_code}"


def perform_ocr(
    file_bytes: bytes,
    file_name: str,
    api_key: Optional[str],
    options: Optional[OcrOptions] = None
) -> OcrResult:
    """Run OCR with a default client."""
    return MistralOcrClient().perform_ocr(file_bytes, file_name, api_key, options)
