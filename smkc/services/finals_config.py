"""Per-mode finals settings. One config drives the shared bracket session and router factory."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class FinalsConfig:
    mode: str  # bm, mr, gp
    title: str
    logger_name: str
    # Qualification columns, best-first (all descending)
    qualification_order: Tuple[str, ...]
    # GET response shape: grouped (winners/losers/grand final lists), simple, paginated
    get_style: str = "simple"
    # Request/response field names carrying the two scores
    score_fields: Tuple[str, str] = ("score1", "score2")
    # Extra request fields stored on the match (e.g. MR course-by-course rounds)
    additional_fields: Tuple[str, ...] = ()
    get_error_message: str = "Failed to fetch finals data"
    post_error_message: str = "Failed to create finals bracket"


BM_FINALS = FinalsConfig(
    mode="bm",
    title="Battle Mode",
    logger_name="smkc.finals.bm",
    qualification_order=("score", "points", "win_rounds"),
    get_style="grouped",
)

MR_FINALS = FinalsConfig(
    mode="mr",
    title="Match Race",
    logger_name="smkc.finals.mr",
    qualification_order=("score", "points", "win_rounds"),
    get_style="simple",
    additional_fields=("rounds",),
)

GP_FINALS = FinalsConfig(
    mode="gp",
    title="Grand Prix",
    logger_name="smkc.finals.gp",
    qualification_order=("score", "points"),
    get_style="paginated",
    score_fields=("points1", "points2"),
    get_error_message="Failed to fetch grand prix finals data",
    post_error_message="Failed to create grand prix finals bracket",
)

FINALS_CONFIGS: Dict[str, FinalsConfig] = {c.mode: c for c in (BM_FINALS, MR_FINALS, GP_FINALS)}
