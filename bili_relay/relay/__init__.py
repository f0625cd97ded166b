"""轮询与私信转发"""

from bili_relay.relay.poller import Poller, PollerState
from bili_relay.relay.relay import MessageRelay, filter_eligible

__all__ = ["Poller", "PollerState", "MessageRelay", "filter_eligible"]
