"""Interest-overlap scoring and ranking.

Scores are the share of the reference user's interests that a candidate also
holds, as an integer percentage rounded half-up. Rankings are ordered by score
descending with candidate id ascending as the tiebreak, so identical inputs
always produce identical output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import AbstractSet, Callable, Iterable, List, Optional, Sequence, Set, Tuple, TypeVar

NO_INTERESTS_MESSAGE = "Add some interests to find matches!"

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Candidate:
	candidate_id: str
	interest_ids: AbstractSet[str]
	interest_names: Tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class MatchCandidate:
	candidate_id: str
	overlap_count: int
	match_score: int
	interest_names: Tuple[str, ...] = ()


@dataclass(slots=True)
class RankResult:
	matches: List[MatchCandidate] = field(default_factory=list)
	message: Optional[str] = None


def overlap_score(overlap: int, reference_size: int) -> int:
	"""round_half_up(100 * overlap / reference_size) in integer arithmetic."""
	if reference_size <= 0:
		raise ValueError("reference interest set must not be empty")
	if overlap < 0 or overlap > reference_size:
		raise ValueError("overlap must be within [0, reference_size]")
	return (200 * overlap + reference_size) // (2 * reference_size)


def score(reference: Set[str], candidate_interests: Iterable[str]) -> int:
	return overlap_score(len(reference.intersection(candidate_interests)), len(reference))


def _ordered(matches: List[MatchCandidate]) -> List[MatchCandidate]:
	return sorted(matches, key=lambda item: (-item.match_score, item.candidate_id))


def rank(
	reference: Set[str],
	candidates: Sequence[Candidate],
	*,
	limit: Optional[int] = None,
) -> RankResult:
	"""Score every candidate against ``reference`` and order the result."""
	if not reference:
		return RankResult(matches=[], message=NO_INTERESTS_MESSAGE)
	size = len(reference)
	scored: List[MatchCandidate] = []
	for candidate in candidates:
		overlap = len(reference.intersection(candidate.interest_ids))
		scored.append(
			MatchCandidate(
				candidate_id=candidate.candidate_id,
				overlap_count=overlap,
				match_score=overlap_score(overlap, size),
				interest_names=candidate.interest_names,
			)
		)
	ordered = _ordered(scored)
	if limit is not None:
		ordered = ordered[: max(0, limit)]
	return RankResult(matches=ordered)


def recommend_communities(
	reference: Set[str],
	pool: Sequence[Candidate],
	joined: AbstractSet[str],
	*,
	limit: Optional[int] = None,
) -> RankResult:
	"""Rank communities, dropping the ones already joined before scoring."""
	visible = [candidate for candidate in pool if candidate.candidate_id not in joined]
	return rank(reference, visible, limit=limit)


def match_people(
	reference: Set[str],
	candidates: Sequence[Candidate],
	*,
	cap: int = 10,
) -> RankResult:
	"""Rank people sharing at least one interest, capped by raw overlap before scoring."""
	if not reference:
		return RankResult(matches=[], message=NO_INTERESTS_MESSAGE)
	sharing: List[Tuple[int, Candidate]] = []
	for candidate in candidates:
		overlap = len(reference.intersection(candidate.interest_ids))
		if overlap > 0:
			sharing.append((overlap, candidate))
	sharing.sort(key=lambda item: (-item[0], item[1].candidate_id))
	capped = [candidate for _, candidate in sharing[: max(0, cap)]]
	return rank(reference, capped)


def boost_by_overlap(
	reference: Set[str],
	items: Sequence[T],
	interests_of: Callable[[T], Iterable[str]],
) -> List[Tuple[T, Optional[int]]]:
	"""Pair items with their overlap score and float higher scores to the top.

	Equal scores keep their incoming order. With an empty reference nothing is
	scored and the order is unchanged.
	"""
	if not reference:
		return [(item, None) for item in items]
	scored = [(item, score(reference, interests_of(item))) for item in items]
	return sorted(scored, key=lambda pair: -pair[1])
