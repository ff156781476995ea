"""
Content Identifier Parser
Canonical ids like "tt0903747:1:3" or "tmdb:550" -> ContentIds
"""
from typing import List, Optional, Tuple

from streamhub.models.history import ContentIds

NAMESPACES = ("tmdb", "tvdb", "kitsu")


def _to_int(value: str) -> Optional[int]:
    try:
        return int(value)
    except ValueError:
        return None


def _episode_coords(parts: List[str], start: int) -> Tuple[Optional[int], Optional[int]]:
    if len(parts) < start + 2:
        return None, None
    season = _to_int(parts[start])
    episode = _to_int(parts[start + 1])
    if season is None or episode is None:
        return None, None
    return season, episode


def parse_content_id(content_id: str) -> ContentIds:
    """
    Parse a colon-delimited canonical id

    The first segment picks the namespace: "tt..." is IMDb, the literal
    tokens tmdb/tvdb/kitsu take the numeric id from the next segment.
    Trailing season/episode segments mark the id as an episode; if they
    are not integers only the primary id is kept. Unknown namespaces give
    an empty ContentIds.
    """
    parts = [part for part in content_id.split(":") if part]
    ids = ContentIds()
    if not parts:
        return ids

    head = parts[0]
    if head.startswith("tt"):
        ids.imdb = head
        season, episode = _episode_coords(parts, 1)
    elif head in NAMESPACES and len(parts) >= 2:
        value = _to_int(parts[1])
        if value is None:
            return ids
        setattr(ids, head, value)
        season, episode = _episode_coords(parts, 2)
    else:
        return ids

    if season is not None:
        ids.is_episode = True
        ids.season = season
        ids.episode = episode
    return ids


def episode_video_id(imdb_id: str, season: int, episode: int) -> str:
    return f"{imdb_id}:{season}:{episode}"
