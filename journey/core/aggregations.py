# ==============================================================================
# Cross-Session Aggregations - Pure Domain Logic
# ==============================================================================
"""
Pure aggregation logic over flows and click counts.

- Length summary: shortest/longest flow by page count, mean page count
- Duration summary: shortest/longest flow by duration, mean duration
- Conversion funnel: clicks per page relative to the entry page
- Heatmap: clicks per block relative to the page total

Ties in summaries go to the earliest-starting flow, then the lowest id.
"""

from collections.abc import Mapping, Sequence

from journey.core.errors import NotFoundError
from journey.core.models import (
    UNKNOWN_NAME,
    Block,
    ClickShare,
    DurationSummary,
    Flow,
    FlowShort,
    LengthSummary,
    Page,
)


def _chronological(flows: Sequence[Flow]) -> list[Flow]:
    if not flows:
        raise NotFoundError("Flows")
    return sorted(flows, key=lambda f: (f.start_at, f.id if f.id is not None else 0))


def summarize_by_length(flows: Sequence[Flow]) -> LengthSummary:
    """
    Summarize flows by number of pages visited.

    Raises:
        NotFoundError: If there are no flows
    """
    ordered = _chronological(flows)
    shortest = min(ordered, key=lambda f: f.page_count)
    longest = max(ordered, key=lambda f: f.page_count)
    average = sum(f.page_count for f in ordered) / len(ordered)

    return LengthSummary(
        minimum=FlowShort.from_flow(shortest),
        maximum=FlowShort.from_flow(longest),
        average_page_count=float(average),
        flow_count=len(ordered),
    )


def summarize_by_duration(flows: Sequence[Flow]) -> DurationSummary:
    """
    Summarize flows by duration (end_at - start_at).

    Raises:
        NotFoundError: If there are no flows
    """
    ordered = _chronological(flows)
    shortest = min(ordered, key=lambda f: f.duration_seconds)
    longest = max(ordered, key=lambda f: f.duration_seconds)
    average = sum(f.duration_seconds for f in ordered) / len(ordered)

    return DurationSummary(
        minimum=FlowShort.from_flow(shortest),
        maximum=FlowShort.from_flow(longest),
        average_duration_seconds=float(average),
        flow_count=len(ordered),
    )


def conversion_shares(pages: Sequence[Page], clicks: Mapping[int, int]) -> list[ClickShare]:
    """
    Express every page's clicks as a fraction of the first page's clicks.

    Pages are ordered by display order (then id). Pages without events are
    reported with zero clicks. If the first page has no clicks every share is 0.
    """
    ordered = sorted(pages, key=lambda p: (p.display_order, p.id))
    if not ordered:
        return []

    entry_clicks = clicks.get(ordered[0].id, 0)
    result = []
    for page in ordered:
        count = clicks.get(page.id, 0)
        share = count / entry_clicks if entry_clicks > 0 else 0.0
        result.append(ClickShare(id=page.id, name=page.name, clicks=count, share=share))
    return result


def heatmap_shares(blocks: Sequence[Block], clicks: Mapping[int, int]) -> tuple[int, list[ClickShare]]:
    """
    Express every block's clicks as a fraction of the page's total clicks.

    Clicked blocks missing from ``blocks`` still count towards the total and
    are listed as "Unknown".

    Args:
        blocks: Blocks to name in the result, normally those on the page
        clicks: Clicks on the page per block id

    Returns:
        Tuple of (total_clicks, shares). Shares are 0 when the total is 0.
    """
    names = {b.id: b.name for b in blocks}
    for block_id in clicks:
        names.setdefault(block_id, UNKNOWN_NAME)

    total = sum(clicks.values())
    result = []
    for block_id in sorted(names):
        count = clicks.get(block_id, 0)
        share = count / total if total > 0 else 0.0
        result.append(ClickShare(id=block_id, name=names[block_id], clicks=count, share=share))
    return total, result
