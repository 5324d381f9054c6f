"""Prompt construction for recommendation synthesis."""

from collections.abc import Sequence

from src.models.schemas import PreferenceSet
from src.services.recommendations.patterns import PatternAdvisory, RatedSignal
from src.services.recommendations.retrieval import Candidate

RECORD_FORMAT = """{
  "recommendations": [
    {
      "title": "Show/Movie Title",
      "type": "Series" or "Movie",
      "genre": "Primary Genre",
      "description": "Brief compelling description (2-3 sentences)",
      "matchReason": "Why this matches their preferences (1 sentence)",
      "rating": "8.5",
      "maturityRating": "PG-13"
    }
  ]
}"""

MATURITY_GUIDANCE = {
    "family": "ONLY family friendly content (G, PG, TV-Y, TV-Y7, TV-G, TV-PG). No horror.",
    "teen": "Content suitable for teens and up (up to PG-13 / TV-14). Nothing rated R, NC-17 or TV-MA.",
    "mature": "Mature content is fine.",
}


def build_system_prompt(preferences: PreferenceSet, region: str, count: int) -> str:
    content_type = preferences.content_type or "both"
    type_rule = {
        "Movie": 'Recommend ONLY movies (type "Movie").',
        "Series": 'Recommend ONLY series (type "Series").',
    }.get(preferences.content_type_filter or "", "Provide a mix of movies and series.")
    maturity = MATURITY_GUIDANCE.get(preferences.maturity_band or "", "No age-rating restriction.")

    return f"""You are a streaming recommendation expert with knowledge of regional content catalogs. Cross-reference each recommendation against the catalog available in {region} before including it.

Return EXACTLY {count} recommendations in JSON format with this structure:
{RECORD_FORMAT}

REGIONAL AVAILABILITY:
1. Only recommend content you are confident is streaming in {region}.
2. If you have any doubt about regional availability, leave that title out.
3. Prefer global originals and mainstream titles that are available everywhere over uncertain ones.

CONTENT TYPE:
- User preference: {content_type}
- {type_rule}

HARD RULES:
- At most 2 recommendations may share the same primary genre; spread them across the user's selected genres.
- Age rating: {maturity}
- Never repeat a title the user has already seen or been recommended.
- "rating" is the typical critic/audience score out of 10 as a string.

Additional focus:
- Match their specific mood: {preferences.mood}
- Align with their genre preferences
- Consider watch history to avoid repeats and find similar content
- Prioritize high-confidence regional availability over perfect preference matching"""


def _describe(signals: Sequence[RatedSignal]) -> str:
    return ", ".join(s.describe() for s in signals)


def format_advisory(advisory: PatternAdvisory) -> str:
    """Render the pattern advisory as prompt text; empty when there is no history."""
    if advisory.is_empty:
        return ""

    lines = ["", "", "User's rating history (learn from this):"]
    signals = advisory.recent + advisory.older
    buckets = (
        (5, "LOVED (5/5) - recommend similar content"),
        (4, "LIKED (4/5) - these patterns work well"),
        (3, "NEUTRAL (3/5) - acceptable but not ideal"),
        (2, "DISLIKED (2/5) - avoid these patterns"),
        (1, "HATED (1/5) - strongly avoid similar content"),
    )
    for rating, label in buckets:
        matching = [s for s in signals if s.rating == rating]
        if matching:
            lines.append(f"- {label}: {_describe(matching)}")

    if advisory.recent:
        lines.append(f"- Most recent ratings (weigh these more): {_describe(advisory.recent)}")

    loved_reasons = [f"{s.title}: {s.match_reason}" for s in advisory.loved if s.match_reason]
    if loved_reasons:
        lines.append(f"- Why loved titles worked: {'; '.join(loved_reasons[:10])}")
    disliked_reasons = [f"{s.title}: {s.match_reason}" for s in advisory.disliked if s.match_reason]
    if disliked_reasons:
        lines.append(f"- Reasons that did not land: {'; '.join(disliked_reasons[:10])}")

    if advisory.top_genres:
        lines.append(f"- Top genres (avg >= 4): {', '.join(advisory.top_genres)}")
    if advisory.poor_genres:
        lines.append(f"- Poor genres (avg <= 2.5): {', '.join(advisory.poor_genres)}")
    if advisory.preferred_type:
        averages = ", ".join(f"{t} {avg:.1f}" for t, avg in sorted(advisory.type_averages.items()))
        lines.append(f"- Strong preference for {advisory.preferred_type} ({averages})")

    if advisory.strong_positive:
        lines.append(f"- Watched and loved (strongest signal): {_describe(advisory.strong_positive)}")
    if advisory.soft_positive:
        lines.append(f"- Rated highly but not watched yet: {_describe(advisory.soft_positive)}")
    if advisory.strong_negative:
        lines.append(f"- Watched and disliked (strong negative): {_describe(advisory.strong_negative)}")

    lines.append("")
    lines.append(
        "Use this feedback to fine-tune recommendations. Prioritize patterns from 5 and 4 star "
        "content, avoid 1 and 2 star patterns."
    )
    return "\n".join(lines)


def format_candidates(candidates: Sequence[Candidate]) -> str:
    if not candidates:
        return ""
    lines = ["", "", "Semantically similar titles to evaluate first (suggestions, not requirements):"]
    for c in candidates:
        lines.append(f"- {c.title} (similarity {c.similarity:.2f}, like {c.seed_title}): {c.description[:200]}")
    lines.append("Drop any candidate that breaks the rules above and substitute from general knowledge.")
    return "\n".join(lines)


def format_exclusions(exclusions: Sequence[str], regional: Sequence[str], region: str) -> str:
    parts = []
    if exclusions:
        parts.append(
            "\n\nPREVIOUSLY RECOMMENDED - DO NOT REPEAT THESE TITLES:\n"
            f"{', '.join(exclusions)}\n\n"
            "You MUST NOT recommend any of these titles again. Find fresh, new recommendations instead."
        )
    if regional:
        parts.append(f"\n\nKnown to be UNAVAILABLE in {region} - never recommend: {', '.join(regional)}")
    return "".join(parts)


def build_user_prompt(
    preferences: PreferenceSet,
    *,
    region: str,
    watched_titles: Sequence[str],
    exclusions: Sequence[str],
    regional_exclusions: Sequence[str],
    candidates: Sequence[Candidate],
    advisory: PatternAdvisory,
    count: int,
) -> str:
    watched = ", ".join(watched_titles) if watched_titles else "None provided"
    history_text = format_advisory(advisory)
    learn = " Learn from their rating history to provide better matches." if history_text else ""

    return f"""User Preferences:
- How their day is going: {preferences.mood}
- Content Type: {preferences.content_type or 'both movies and series'}
- Genres: {', '.join(preferences.genres) or 'no preference'}
- Watch Time: {preferences.watch_time}
- Watch Style: {preferences.watch_style}
- Language/Subtitles: {preferences.language}
- Watching: {preferences.company}
- Interested in underrated content: {preferences.underrated or 'no preference'}
- Age rating: {preferences.age_rating or 'no preference'}
- Region: {region}

Recently Watched Shows:
{watched}{history_text}{format_exclusions(exclusions, regional_exclusions, region)}{format_candidates(candidates)}

Please provide {count} personalized recommendations that match their current state of mind based on how their day is going. Consider their language preferences, whether they're watching alone or with company, and if they want underrated content.{learn}"""


def build_repair_prompt(
    original_user_prompt: str,
    *,
    accepted: Sequence[str],
    rejected: Sequence[tuple[str, str]],
    missing: int,
) -> str:
    """Follow-up request replacing records the validator rejected."""
    rejected_text = "\n".join(f"- {title}: {reason}" for title, reason in rejected) or "- none"
    return f"""{original_user_prompt}

Some of your previous recommendations broke the rules and were removed:
{rejected_text}

Already accepted (do not repeat): {', '.join(accepted) or 'none'}

Return EXACTLY {missing} NEW recommendations in the same JSON format that satisfy every rule."""
