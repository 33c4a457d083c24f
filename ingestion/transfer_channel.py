"""HTTP transfer channel that uploads one file to the object store with progress."""

import io
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from common.constants import UNKNOWN_MIME_TYPE
from common.exceptions import ConfigurationMissingError, TransferFailedError
from common.logging_config import get_logger
from common.utils import calculate_upload_timeout, format_file_size
from ingestion.schemas import UploadErrorResponse, UploadResponse

logger = get_logger(__name__)

ProgressCallback = Callable[[int], None]


class TransferErrorKind(str, Enum):
    CONFIGURATION_MISSING = "configuration_missing"
    TRANSFER_FAILURE = "transfer_failure"


@dataclass(frozen=True)
class TransferOutcome:
    """
    Terminal result of one transfer.

    Exactly one of (remote_locator, error_kind) is set.
    """
    remote_locator: Optional[str] = None
    remote_public_id: Optional[str] = None
    error_kind: Optional[TransferErrorKind] = None
    reason: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error_kind is None

    @classmethod
    def succeeded(cls, remote_locator: str, remote_public_id: str) -> "TransferOutcome":
        return cls(remote_locator=remote_locator, remote_public_id=remote_public_id)

    @classmethod
    def failed(cls, reason: str) -> "TransferOutcome":
        return cls(error_kind=TransferErrorKind.TRANSFER_FAILURE, reason=reason)

    @classmethod
    def configuration_missing(cls, reason: str) -> "TransferOutcome":
        return cls(error_kind=TransferErrorKind.CONFIGURATION_MISSING, reason=reason)


class ProgressTracker:
    """Turns byte positions into non-decreasing integer percentages."""

    def __init__(self, total_bytes: int, callback: Optional[ProgressCallback]):
        self.total_bytes = total_bytes
        self._callback = callback
        self._last_percent = -1
        self._closed = False

    def emit(self, percent: int) -> None:
        if self._closed or self._callback is None or percent <= self._last_percent:
            return
        self._last_percent = percent
        self._callback(percent)

    def bytes_sent(self, position: int) -> None:
        if self.total_bytes <= 0:
            return
        self.emit(min(100, position * 100 // self.total_bytes))

    def close(self) -> None:
        self._closed = True


class ProgressPayload(io.BytesIO):
    """In-memory upload body that reports how far the transport has read it."""

    def __init__(self, data: bytes, tracker: ProgressTracker):
        super().__init__(data)
        self._tracker = tracker

    def read(self, size: Optional[int] = -1) -> bytes:
        chunk = super().read(size)
        if chunk:
            self._tracker.bytes_sent(self.tell())
        return chunk


class TransferChannel:
    """
    Uploads a single file per call to a Cloudinary-style upload endpoint.

    The channel never retries and never touches engine state; callers get
    progress through a callback and a single TransferOutcome.
    """

    def __init__(self, upload_url: str, session: Optional[httpx.AsyncClient] = None):
        """
        Initialize transfer channel.

        Args:
            upload_url: Multipart upload endpoint
            session: Optional AsyncClient (tests inject one backed by MockTransport)
        """
        self.upload_url = upload_url.strip() if upload_url else ""
        self.session = session or httpx.AsyncClient()

    async def close(self) -> None:
        await self.session.aclose()

    def _check_destination(self, destination_hint: str) -> None:
        if not self.upload_url:
            raise ConfigurationMissingError("upload URL is not configured")
        if not destination_hint or not destination_hint.strip():
            raise ConfigurationMissingError("upload preset is not configured")

    async def begin_transfer(
        self,
        file_bytes: bytes,
        destination_hint: str,
        *,
        file_name: str = "upload",
        mime_type: str = UNKNOWN_MIME_TYPE,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TransferOutcome:
        """
        Upload one file and report its progress.

        Args:
            file_bytes: File content, must be non-empty
            destination_hint: Upload preset naming the logical target
            file_name: Name sent with the multipart file field
            mime_type: Content type of the file field
            on_progress: Called with non-decreasing percentages until the outcome is returned

        Returns:
            TransferOutcome carrying either the remote locator or the failure reason
        """
        tracker = ProgressTracker(len(file_bytes), on_progress)
        try:
            self._check_destination(destination_hint)
            if not file_bytes:
                raise TransferFailedError("empty payload")
            tracker.emit(0)
            result = await self._post(file_bytes, destination_hint.strip(), file_name, mime_type, tracker)
        except ConfigurationMissingError as e:
            logger.error(f"Upload not attempted, configuration missing [file={file_name}]: {e}")
            return TransferOutcome.configuration_missing(str(e))
        except TransferFailedError as e:
            logger.warning(f"Upload failed [file={file_name}]: {e}")
            return TransferOutcome.failed(str(e))
        finally:
            tracker.close()

        logger.info(
            f"Upload succeeded [file={file_name}, size={format_file_size(len(file_bytes))}, "
            f"public_id={result.public_id}]"
        )
        return TransferOutcome.succeeded(result.secure_url, result.public_id)

    async def _post(
        self,
        file_bytes: bytes,
        destination_hint: str,
        file_name: str,
        mime_type: str,
        tracker: ProgressTracker,
    ) -> UploadResponse:
        payload = ProgressPayload(file_bytes, tracker)
        files = {'file': (file_name, payload, mime_type)}
        data = {'upload_preset': destination_hint}
        timeout = calculate_upload_timeout(len(file_bytes))

        logger.debug(f"POST {self.upload_url} [file={file_name}, timeout={timeout:.1f}s]")
        try:
            response = await self.session.post(self.upload_url, files=files, data=data, timeout=timeout)
        except httpx.TimeoutException:
            raise TransferFailedError(f"upload timed out after {timeout:.1f}s")
        except httpx.HTTPError as e:
            raise TransferFailedError(f"transport error: {type(e).__name__}: {e}")
        except httpx.InvalidURL as e:
            raise TransferFailedError(f"invalid upload URL: {e}")
        finally:
            payload.close()

        if not response.is_success:
            raise TransferFailedError(self._format_error(response))

        try:
            return UploadResponse.model_validate_json(response.content)
        except ValidationError:
            raise TransferFailedError(f"malformed response body (status={response.status_code})")

    def _format_error(self, response: httpx.Response) -> str:
        """
        Build a failure reason from a non-success response.

        Args:
            response: HTTP response object

        Returns:
            Reason including the status code and the store's message when present
        """
        try:
            detail = UploadErrorResponse.model_validate_json(response.content).error.message
        except ValidationError:
            detail = response.text[:200] if response.text else 'no error body'
        return f"status {response.status_code}: {detail}"
