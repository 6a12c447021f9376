"""Recording event publisher for pub/sub consumers."""

import logging
from pubsub import pub

from ..models.audio import AudioBlob
from ..models.events import RecordingEvents

logger = logging.getLogger(__name__)

TOPIC_STARTED = "recording_started"
TOPIC_TIME_UPDATED = "recording_time_updated"
TOPIC_FINISHED = "recording_finished"
TOPIC_FAILED = "recording_failed"


class PubSubRecordingEvents(RecordingEvents):
    """Publishes recording events using pubsub.pub.

    Listeners subscribe with these argument names:
    ``recording_started()``, ``recording_time_updated(seconds)``,
    ``recording_finished(blob)``, ``recording_failed(error)``.
    """

    def on_start(self) -> None:
        pub.sendMessage(TOPIC_STARTED)

    def on_time_update(self, seconds: int) -> None:
        pub.sendMessage(TOPIC_TIME_UPDATED, seconds=seconds)

    def on_finish(self, blob: AudioBlob) -> None:
        logger.debug(f"Publishing finished segment: {blob.size} bytes")
        pub.sendMessage(TOPIC_FINISHED, blob=blob)

    def on_error(self, error: Exception) -> None:
        pub.sendMessage(TOPIC_FAILED, error=error)
