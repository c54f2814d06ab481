"""Derive category flags (movie, news, sports, kids, series) from EPG genres."""
from __future__ import annotations

import dataclasses
from typing import Iterable

# Matched case-insensitively against the start of each genre string
MOVIE_GENRES = ("movie", "film")
NEWS_GENRES = ("news", "newsmagazine", "current affairs")
SPORTS_GENRES = ("sport", "football", "soccer", "baseball", "basketball", "hockey")
KIDS_GENRES = ("children", "kids", "animation", "cartoon")
SERIES_GENRES = ("series", "sitcom", "soap", "drama series")


@dataclasses.dataclass(frozen=True)
class GenreFlags:
    is_movie: bool = False
    is_news: bool = False
    is_sports: bool = False
    is_kids: bool = False
    is_series: bool = False


def _matches(genres: list[str], prefixes: tuple[str, ...]) -> bool:
    return any(g.startswith(p) for g in genres for p in prefixes)


def map_genres(
    genres: Iterable[str],
    has_episode_info: bool = False,
) -> GenreFlags:
    """
    Return the category flags for a programme.

    A programme counts as a series when a genre says so or when it carries
    episode information (subtitle, season or episode number), unless it is a
    movie.
    """
    lowered = [g.strip().lower() for g in genres if g]
    is_movie = _matches(lowered, MOVIE_GENRES)
    return GenreFlags(
        is_movie=is_movie,
        is_news=_matches(lowered, NEWS_GENRES),
        is_sports=_matches(lowered, SPORTS_GENRES),
        is_kids=_matches(lowered, KIDS_GENRES),
        is_series=not is_movie and (has_episode_info or _matches(lowered, SERIES_GENRES)),
    )
