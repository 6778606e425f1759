"""Channel-layer backed :class:`~operations.realtime.broadcaster.Sender`."""
from __future__ import annotations

from channels.exceptions import ChannelFull

from .events import Event

# group_send/send handler name on the consumer: ``realtime_event``
MESSAGE_TYPE = "realtime.event"


class ChannelLayerSender:
    """Writes events into one consumer's channel.

    The consumer turns each ``realtime.event`` message into a WebSocket
    frame, so writes for a connection keep the order they were issued in.
    """

    def __init__(self, channel_layer, channel_name: str) -> None:
        self.channel_layer = channel_layer
        self.channel_name = channel_name

    async def send(self, event: Event) -> bool:
        try:
            await self.channel_layer.send(
                self.channel_name,
                {"type": MESSAGE_TYPE, **event.as_message()},
            )
        except ChannelFull:
            return False
        return True
