from .rest import RestTransport
from .polling import PollStatus, poll_until_complete
from .streaming import (
    StreamState,
    StreamingProtocol,
    StreamingSession,
    ConnectTarget,
    TranscriptUpdate,
    StreamCompleted,
    StreamFailed,
)
