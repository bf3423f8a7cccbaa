"""
Mock Asset Store Implementation

Simulates Cloudinary-like image storage without making real API calls.
Used in development mode (ENV_MODE=development) and by the test suite to:
    - Exercise the complete catalog flow locally
    - Inject upload/delete failures deterministically
    - Verify which assets currently exist

Behavior:
    - Keeps assets in an in-process dictionary
    - Optionally simulates latency and a random failure rate
    - Generates Cloudinary-like public ids ("menuItems/mock_xxx")
"""

import asyncio
import logging
import random
import uuid

from app.core.errors import AssetStoreError
from app.services.assets.base import AssetRef, BaseAssetStore

logger = logging.getLogger(__name__)


class MockAssetStore(BaseAssetStore):
    """
    In-memory asset store.

    Attributes:
        failure_rate: Probability of a simulated store failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        fail_uploads: Force every upload to fail
        fail_deletes: Force every delete to fail

    Example:
        >>> store = MockAssetStore()
        >>> ref = await store.upload("https://example.com/pizza.jpg", "menuItems")
        >>> store.exists(ref.asset_id)
        True
    """

    BASE_URL = "https://assets.mock.local/image/upload"

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.fail_uploads = False
        self.fail_deletes = False

        self._assets: dict[str, str] = {}
        self.upload_calls: list[str] = []
        self.delete_calls: list[str] = []

        logger.info(
            f"MockAssetStore initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        """Return the provider name."""
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def exists(self, asset_id: str) -> bool:
        """Check whether an asset is currently stored."""
        return asset_id in self._assets

    def url_for(self, asset_id: str) -> str | None:
        return self._assets.get(asset_id)

    @property
    def asset_count(self) -> int:
        return len(self._assets)

    async def upload(self, payload: str, folder: str) -> AssetRef:
        self.upload_calls.append(payload)
        await self._simulate_latency()

        if self.fail_uploads or self._should_fail():
            logger.debug("Mock: Upload failed")
            raise AssetStoreError("Error uploading image")

        asset_id = f"{folder}/mock_{uuid.uuid4().hex[:20]}"
        url = f"{self.BASE_URL}/{asset_id}.jpg"
        self._assets[asset_id] = url

        logger.info(f"Mock: Stored asset {asset_id}")
        return AssetRef(asset_id=asset_id, url=url)

    async def delete(self, asset_id: str) -> bool:
        self.delete_calls.append(asset_id)
        await self._simulate_latency()

        if self.fail_deletes or self._should_fail():
            logger.debug(f"Mock: Delete of {asset_id} failed")
            raise AssetStoreError("Error deleting image")

        if self._assets.pop(asset_id, None) is None:
            logger.debug(f"Mock: Asset {asset_id} already absent")
            return False

        logger.info(f"Mock: Deleted asset {asset_id}")
        return True

    async def health_check(self) -> bool:
        """Mock health check always returns True."""
        return True
