"""
Recognises prompts and warnings in free-text helper output.

sshfs and ssh have no machine-readable protocol for this, so detection is
substring matching on each chunk as it arrives. Prompts usually have no
trailing newline, which is why chunks are never buffered into lines.
"""

from enum import Enum
from typing import Set

HOST_KEY_CHANGED_BANNER = "WARNING: REMOTE HOST IDENTIFICATION HAS CHANGED!"

# "Password:" and "password for" both contain the bare token, matched without case
CREDENTIAL_TOKEN = "password"


class OutputSignal(str, Enum):
    CREDENTIAL_REQUEST = "credential_request"
    HOST_KEY_CHANGED = "host_key_changed"


def classify_output(text: str) -> Set[OutputSignal]:
    signals: Set[OutputSignal] = set()
    if not text:
        return signals

    if CREDENTIAL_TOKEN in text.lower():
        signals.add(OutputSignal.CREDENTIAL_REQUEST)

    if HOST_KEY_CHANGED_BANNER in text:
        signals.add(OutputSignal.HOST_KEY_CHANGED)

    return signals
