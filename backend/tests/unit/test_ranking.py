import pytest

from interestconnect.domain.matching import ranking
from interestconnect.domain.matching.ranking import Candidate


def _candidate(candidate_id, *interest_ids, names=()):
	return Candidate(candidate_id=candidate_id, interest_ids=frozenset(interest_ids), interest_names=tuple(names))


def test_score_quarter_overlap():
	assert ranking.score({"a", "b", "c", "d"}, {"a", "z"}) == 25


@pytest.mark.parametrize(
	("overlap", "size", "expected"),
	[(1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 8, 38), (0, 5, 0), (5, 5, 100)],
)
def test_overlap_score_rounds_half_up(overlap, size, expected):
	assert ranking.overlap_score(overlap, size) == expected


def test_overlap_score_rejects_empty_reference():
	with pytest.raises(ValueError):
		ranking.overlap_score(0, 0)


def test_score_is_bounded_and_full_only_for_superset():
	reference = {"a", "b", "c"}
	for candidate in ({"a"}, {"a", "b"}, {"x", "y"}, {"a", "b", "c"}, {"a", "b", "c", "d"}, set()):
		value = ranking.score(reference, candidate)
		assert isinstance(value, int)
		assert 0 <= value <= 100
		assert (value == 100) == reference.issubset(candidate)


def test_rank_with_empty_reference_returns_message():
	result = ranking.rank(set(), [_candidate("u1", "a")])
	assert result.matches == []
	assert result.message == ranking.NO_INTERESTS_MESSAGE


def test_rank_orders_by_score_then_candidate_id():
	reference = {"a", "b", "c", "d"}
	result = ranking.rank(
		reference,
		[
			_candidate("zed", "a", "b"),
			_candidate("amy", "a"),
			_candidate("bob", "a", "b"),
			_candidate("cat", "a", "b", "c", "d"),
		],
	)
	assert [(m.candidate_id, m.match_score) for m in result.matches] == [
		("cat", 100),
		("bob", 50),
		("zed", 50),
		("amy", 25),
	]
	assert result.message is None


def test_rank_is_monotone_in_shared_interests():
	reference = {"a", "b", "c", "d", "e"}
	fewer = ranking.rank(reference, [_candidate("u1", "a", "x")]).matches[0]
	more = ranking.rank(reference, [_candidate("u1", "a", "b", "x")]).matches[0]
	assert more.match_score >= fewer.match_score
	assert more.overlap_count == fewer.overlap_count + 1


def test_rank_limit_truncates_after_ordering():
	reference = {"a", "b"}
	result = ranking.rank(reference, [_candidate("c1", "a"), _candidate("c2", "a", "b"), _candidate("c3")], limit=2)
	assert [m.candidate_id for m in result.matches] == ["c2", "c1"]


def test_single_candidate_is_scored_normally():
	result = ranking.rank({"a", "b"}, [_candidate("only", "b", names=("Hiking",))])
	assert len(result.matches) == 1
	assert result.matches[0].match_score == 50
	assert result.matches[0].interest_names == ("Hiking",)


def test_recommend_communities_excludes_joined():
	reference = {"a", "b"}
	pool = [_candidate("c-joined", "a", "b"), _candidate("c-open", "a"), _candidate("c-none")]
	result = ranking.recommend_communities(reference, pool, {"c-joined"})
	ids = [m.candidate_id for m in result.matches]
	assert "c-joined" not in ids
	assert ids == ["c-open", "c-none"]
	assert result.matches[-1].match_score == 0


def test_recommend_communities_with_no_interests():
	result = ranking.recommend_communities(set(), [_candidate("c1", "a")], set())
	assert result.matches == []
	assert result.message == ranking.NO_INTERESTS_MESSAGE


def test_match_people_drops_zero_overlap():
	result = ranking.match_people({"a", "b"}, [_candidate("u1", "a"), _candidate("u2", "x")])
	assert [m.candidate_id for m in result.matches] == ["u1"]


def test_match_people_caps_by_raw_overlap_before_ranking():
	reference = {"a", "b", "c"}
	candidates = [
		_candidate("u5", "a"),
		_candidate("u1", "a"),
		_candidate("u3", "a", "b", "c"),
		_candidate("u2", "a", "b"),
		_candidate("u4", "b"),
	]
	result = ranking.match_people(reference, candidates, cap=3)
	assert [m.candidate_id for m in result.matches] == ["u3", "u2", "u1"]
	assert [m.match_score for m in result.matches] == [100, 67, 33]


def test_match_people_never_exceeds_cap():
	reference = {"a"}
	candidates = [_candidate(f"u{i:02d}", "a") for i in range(25)]
	result = ranking.match_people(reference, candidates, cap=10)
	assert len(result.matches) == 10
	assert result.matches[0].candidate_id == "u00"


def test_boost_by_overlap_is_stable_for_equal_scores():
	reference = {"a", "b"}
	items = [
		{"id": "first", "interests": ["x"]},
		{"id": "second", "interests": ["a"]},
		{"id": "third", "interests": ["y"]},
		{"id": "fourth", "interests": ["a", "b"]},
	]
	boosted = ranking.boost_by_overlap(reference, items, lambda item: item["interests"])
	assert [(item["id"], value) for item, value in boosted] == [
		("fourth", 100),
		("second", 50),
		("first", 0),
		("third", 0),
	]


def test_boost_by_overlap_without_reference_keeps_order():
	items = ["b", "a"]
	assert ranking.boost_by_overlap(set(), items, lambda item: [item]) == [("b", None), ("a", None)]
