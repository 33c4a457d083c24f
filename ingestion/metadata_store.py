"""Metadata store adapters: the abstract contract and the REST table client."""

import asyncio
import uuid
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from pydantic import ValidationError

from common.config import Config
from common.constants import REST_TABLE_PATH
from common.exceptions import RecordNotFound, StoreUnavailable, ValidationRejected
from common.logging_config import get_logger
from common.types import MetadataRecord, RecordFields
from ingestion.schemas import FileRow, FileRowInsert

logger = get_logger(__name__)


class MetadataStore(ABC):
    """
    Durable record of completed uploads, partitioned by owner scope.

    Implementations raise StoreUnavailable, ValidationRejected or RecordNotFound.
    """

    @abstractmethod
    async def list_records(self, owner_scope: str) -> List[MetadataRecord]:
        """Return the owner's records, newest first by creation time."""

    @abstractmethod
    async def create_record(self, owner_scope: str, fields: RecordFields) -> MetadataRecord:
        """Insert a record and return it with its store-assigned id and timestamp."""

    @abstractmethod
    async def delete_record(self, record_id: str) -> None:
        """Delete a record by id."""

    async def close(self) -> None:
        pass


class RestMetadataStore(MetadataStore):
    """PostgREST-style client for the remote files table, with retry on 5xx and network errors."""

    def __init__(self, config: Config, session: Optional[httpx.AsyncClient] = None):
        """
        Initialize REST store client.

        Args:
            config: Configuration instance (store URL, API key, retry settings)
            session: Optional AsyncClient (tests inject one backed by MockTransport)
        """
        self.config = config
        self.session = session or httpx.AsyncClient(
            base_url=config.get_store_url(),
            timeout=config.get_timeout(),
        )
        logger.info(f"Initialized RestMetadataStore [base_url={config.get_store_url()}]")

    async def close(self) -> None:
        await self.session.aclose()

    def _headers(self) -> dict:
        api_key = self.config.get_api_key()
        headers = {'Prefer': 'return=representation'}
        if api_key:
            headers['apikey'] = api_key
            headers['Authorization'] = f'Bearer {api_key}'
        return headers

    async def _request_with_retry(self, method: str, **kwargs) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (GET, POST, DELETE)
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object with a status below 500

        Raises:
            StoreUnavailable: If the store keeps failing after max retries
        """
        retry_config = self.config.get_retry_config()
        max_retries = retry_config['max_retries']
        backoff = retry_config['retry_backoff_multiplier']

        request_id = str(uuid.uuid4())
        headers = self._headers()
        headers['X-Request-ID'] = request_id

        last_error = None
        for attempt in range(max_retries + 1):
            try:
                response = await self.session.request(method, REST_TABLE_PATH, headers=headers, **kwargs)
                logger.debug(
                    f"Response received: {method} {REST_TABLE_PATH} status={response.status_code} [request_id={request_id}]"
                )
                if response.status_code < 500:
                    return response
                last_error = f"status {response.status_code}"
            except httpx.TransportError as e:
                last_error = type(e).__name__

            if attempt < max_retries:
                delay = backoff ** attempt
                logger.warning(
                    f"Store request failed (attempt {attempt + 1}/{max_retries + 1}): "
                    f"{method} error={last_error}, retrying in {delay}s [request_id={request_id}]"
                )
                await asyncio.sleep(delay)

        logger.error(f"Store request failed (max retries exceeded): {method} error={last_error} [request_id={request_id}]")
        raise StoreUnavailable(f"metadata store unavailable ({last_error})")

    def _parse_rows(self, response: httpx.Response) -> List[MetadataRecord]:
        try:
            rows = response.json()
            return [FileRow.model_validate(row).to_record() for row in rows]
        except (ValueError, TypeError, ValidationError) as e:
            raise StoreUnavailable(f"malformed store response: {e}")

    async def list_records(self, owner_scope: str) -> List[MetadataRecord]:
        params = {
            'select': '*',
            'user_id': f'eq.{owner_scope}',
            'order': 'created_at.desc,id.desc',
        }
        response = await self._request_with_retry('GET', params=params)
        if response.status_code != 200:
            raise StoreUnavailable(f"list rejected with status {response.status_code}")
        records = self._parse_rows(response)
        logger.debug(f"Listed {len(records)} records [owner={owner_scope}]")
        return records

    async def create_record(self, owner_scope: str, fields: RecordFields) -> MetadataRecord:
        payload = FileRowInsert.from_fields(owner_scope, fields).model_dump()
        response = await self._request_with_retry('POST', json=payload)

        if response.status_code in (400, 409, 422):
            raise ValidationRejected(f"record rejected with status {response.status_code}: {response.text[:200]}")
        if response.status_code not in (200, 201):
            raise StoreUnavailable(f"create rejected with status {response.status_code}")

        records = self._parse_rows(response)
        if not records:
            raise StoreUnavailable("store did not return the created record")
        logger.info(f"Created metadata record [record_id={records[0].record_id}, file={fields.file_name}]")
        return records[0]

    async def delete_record(self, record_id: str) -> None:
        response = await self._request_with_retry('DELETE', params={'id': f'eq.{record_id}'})

        if response.status_code == 404:
            raise RecordNotFound(record_id)
        if response.status_code == 204:
            return
        if response.status_code != 200:
            raise StoreUnavailable(f"delete rejected with status {response.status_code}")
        if not self._parse_rows(response):
            raise RecordNotFound(record_id)
        logger.info(f"Deleted metadata record [record_id={record_id}]")
