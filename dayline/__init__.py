"""Dayline - Timeline & Location-Block Synthesis

Philosophy:
    A day arrives as several imperfect signal streams: hourly location
    summaries, app sessions, calendar entries and communications.
    Reconstruct one chronologically consistent narrative, say how
    confident we are, and never invent certainty we don't have.

Components:
    places/: Resolve samples to saved, inferred or unknown places
        - resolver.py: saved place > inferred cluster > unknown + alternatives
        - cache.py: per-user label cache (copy on read)
        - inference.py: home/work/frequent clusters from history

    blocks/: Group hourly summaries into contiguous location blocks
        - app_usage.py: clip, merge and total app sessions per block
        - builder.py: block state machine with carry-forward

    timeline/: One ordered feed across every event source
        - events.py: tagged auxiliary records and TimelineEvent
        - classification.py: productivity flags
        - normalizer.py: ordering and overlap sweep

    patterns/: Compare a day against the user's history
        - analyzer.py: anomaly score, deviations, predictions

    synthesis.py: one day (or many in parallel) through places, blocks, timeline
    presentation.py: renderer-facing icons and colors (the "display" field
        on CLI blocks and events)
    cli.py: JSON in, JSON out

Configuration: args/synthesis.yaml, read once by the entry points
(cli.py, synthesis.py); core functions fall back to built-in defaults.
"""

from pathlib import Path

__version__ = "0.1.0"

# Path constants
PROJECT_ROOT = Path(__file__).parent.parent
PACKAGE_ROOT = Path(__file__).parent
ARGS_DIR = PROJECT_ROOT / "args"
CONFIG_PATH = ARGS_DIR / "synthesis.yaml"

# Labels that carry no place information
UNKNOWN_LOCATION_LABEL = "Unknown Location"
IN_TRANSIT_LABEL = "In Transit"
MEANINGLESS_LABELS = {"unknown location", "unknown", "location", "in transit", ""}

__all__ = [
    "ARGS_DIR",
    "CONFIG_PATH",
    "IN_TRANSIT_LABEL",
    "MEANINGLESS_LABELS",
    "PACKAGE_ROOT",
    "PROJECT_ROOT",
    "UNKNOWN_LOCATION_LABEL",
    "__version__",
]
