"""Turn pipeline cancellation signals into a Cancelled exception."""

from __future__ import annotations

import logging
import signal
from contextlib import contextmanager

from revgate_core.errors import Cancelled

logger = logging.getLogger(__name__)


def _raise_cancelled(signum, frame):
    raise Cancelled(f"Received {signal.Signals(signum).name}; run cancelled.")


@contextmanager
def cancellation_scope(signals=(signal.SIGTERM,)):
    """Raise Cancelled in the main thread when one of ``signals`` arrives.

    Raising from the handler interrupts blocking socket reads, so an
    in-flight HTTP call is abandoned rather than retried. KeyboardInterrupt
    (SIGINT) is converted to Cancelled as well. Previous handlers are
    restored on exit.
    """
    previous = {}
    for sig in signals:
        try:
            previous[sig] = signal.signal(sig, _raise_cancelled)
        except ValueError:
            # signal.signal only works in the main thread.
            logger.debug("Cannot install handler for %s outside the main thread", sig)
    try:
        yield
    except KeyboardInterrupt:
        raise Cancelled("Interrupted; run cancelled.")
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)
