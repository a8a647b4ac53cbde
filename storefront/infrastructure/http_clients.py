import httpx
import logging

from storefront.application.interfaces import StorageService
from storefront.domain.models import ProofFile, StoredFile
from storefront.domain.exceptions import StorageServiceError

logger = logging.getLogger(__name__)


class HTTPStorageClient(StorageService):
    def __init__(self, base_url: str, api_token: str, bucket: str, timeout: float = 15.0):
        self._base_url = base_url.rstrip("/")
        self._api_token = api_token
        self._bucket = bucket
        self._timeout = timeout

    async def upload(self, file: ProofFile) -> StoredFile:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self._base_url}/api/storage/buckets/{self._bucket}/files",
                    files={"file": (file.file_name, file.content, file.content_type)},
                    headers={"X-API-Key": self._api_token},
                    timeout=self._timeout
                )

                if response.status_code in (200, 201):
                    data = response.json()
                    return StoredFile(file_id=data["id"], file_url=data["url"])
                else:
                    raise StorageServiceError(f"Storage service error: {response.status_code}")

        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Storage service returned an unexpected body: {e}")
            raise StorageServiceError("Storage service returned an unexpected response")
        except httpx.TimeoutException as e:
            logger.error(f"Storage service timed out: {e}")
            raise StorageServiceError("Storage service timed out, please retry")
        except httpx.RequestError as e:
            logger.error(f"Storage service connection error: {e}")
            raise StorageServiceError(f"Storage service unavailable: {str(e)}")

    async def delete(self, file_id: str) -> None:
        try:
            async with httpx.AsyncClient() as client:
                response = await client.delete(
                    f"{self._base_url}/api/storage/buckets/{self._bucket}/files/{file_id}",
                    headers={"X-API-Key": self._api_token},
                    timeout=self._timeout
                )

                if response.status_code not in (200, 204, 404):
                    raise StorageServiceError(f"Storage service error: {response.status_code}")

        except httpx.RequestError as e:
            logger.error(f"Storage service connection error: {e}")
            raise StorageServiceError(f"Storage service unavailable: {str(e)}")
