import sys
from pathlib import Path

import pytest

# Ensure repo root on sys.path for imports from anywhere in tests tree.
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sceneforge.timeline_engine.service import set_timeline_engine_service  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_timeline_service(monkeypatch):
    for name in (
        "SCENEFORGE_TIMELINE_MIN_DURATION",
        "SCENEFORGE_TIMELINE_DEFAULT_ITEM_DURATION",
        "SCENEFORGE_TIMELINE_MIN_TRACK_WIDTH",
        "SCENEFORGE_TIMELINE_TRACK_PADDING",
        "SCENEFORGE_TIMELINE_CARD_BASE_WIDTH",
        "SCENEFORGE_TIMELINE_LAYOUT_CACHE_SIZE",
        "SCENEFORGE_TIMELINE_MAX_RULER_TICKS",
    ):
        monkeypatch.delenv(name, raising=False)
    set_timeline_engine_service(None)
    yield
    set_timeline_engine_service(None)
