import asyncio
from dataclasses import dataclass
import logging
from typing import Awaitable, Callable
from ..models import ErrorCode, SpeechError, SpeechResult, SpeechSuccess
from ..retry import is_network_error

logger = logging.getLogger(__name__)

COMPLETED_STATUSES = {"completed"}
FAILED_STATUSES = {"error", "failed"}


@dataclass
class PollStatus:
    status: str
    text: str = None
    error: str = None


async def poll_until_complete(
    check: Callable[[], Awaitable[PollStatus]],
    *,
    interval: float = 1.0,
    max_attempts: int = 60,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "transcript",
    debug: bool = False
) -> SpeechResult:
    """
    Poll `check` until the job reaches a terminal status.

    `completed` resolves with the transcript, `error`/`failed` with a
    TRANSCRIPTION_ERROR. Any other status keeps polling. A network failure
    while polling uses up one attempt. Running out of attempts yields
    TRANSCRIPTION_TIMEOUT.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            poll = await check()
        except asyncio.CancelledError:
            raise
        except Exception as ex:
            if not is_network_error(ex):
                raise
            logger.warning(f"Polling {label} failed with '{ex}' (attempt {attempt}/{max_attempts})")
            poll = None

        if poll is not None:
            status = (poll.status or "").lower()
            if debug:
                logger.info(f"Polling {label}: status={status} (attempt {attempt}/{max_attempts})")

            if status in COMPLETED_STATUSES:
                text = (poll.text or "").strip()
                if not text:
                    return SpeechError("No speech detected", ErrorCode.NO_SPEECH_DETECTED)
                return SpeechSuccess(text)

            if status in FAILED_STATUSES:
                return SpeechError(
                    f"Transcription failed: {poll.error or status}",
                    ErrorCode.TRANSCRIPTION_ERROR,
                    poll.error
                )

        if attempt < max_attempts:
            await sleep(interval)

    logger.error(f"Polling {label} gave up after {max_attempts} attempts")
    return SpeechError("Transcription timeout", ErrorCode.TRANSCRIPTION_TIMEOUT)
