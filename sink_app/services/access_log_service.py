"""
Access log handoff.

In production the encoded record is written to the analytics storage,
keyed by the link id. Elsewhere it is only logged, together with its
decoded form, so the codec can be checked locally.

Writes are best effort: a failure is logged and never reaches the visitor.
"""

import logging

from sink_app.access_log.codec import AccessLogDecoder, AccessLogEncoder
from sink_app.access_log.record import AccessLogRecord
from sink_app.storage.strategies import AnalyticsStorageStrategy

logger = logging.getLogger(__name__)


class AccessLogService:

    def __init__(
        self,
        storage: AnalyticsStorageStrategy,
        encoder: AccessLogEncoder,
        decoder: AccessLogDecoder,
        production: bool = False
    ):
        self.storage = storage
        self.encoder = encoder
        self.decoder = decoder
        self.production = production

    async def write(self, link_id: str, record: AccessLogRecord) -> bool:
        """
        Hand one record to the analytics sink.

        Returns:
            True if the record was stored, False if it was only logged
            or the write failed
        """
        blobs = self.encoder.encode(record)

        if not self.production:
            logger.info("access logs: %s %s", blobs, self.decoder.decode(blobs).model_dump())
            return False

        try:
            await self.storage.put(index=link_id, blobs=blobs)
        except Exception:
            logger.exception("Failed to write access log for link %s", link_id)
            return False
        return True
