"""Foundation push drivers."""

from blueshift.pushers.base import BasePusher, PusherFactory
from blueshift.pushers.cf import CFPusher, create_cf_pusher

__all__ = [
    "BasePusher",
    "PusherFactory",
    "CFPusher",
    "create_cf_pusher",
]
