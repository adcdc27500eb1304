import pytest

from interestconnect.domain.matching import ranking
from interestconnect.domain.matching.service import MatchingService

CATALOG = {
	"i-hike": ("Hiking", "outdoors"),
	"i-chess": ("Chess", "games"),
	"i-jazz": ("Jazz", "music"),
	"i-code": ("Coding", "tech"),
}


class FakeInterestStore:
	def __init__(self, users=None, communities=None):
		self.users = {uid: list(ids) for uid, ids in (users or {}).items()}
		self.communities = {cid: list(ids) for cid, ids in (communities or {}).items()}

	async def interests_of_user(self, user_id):
		return set(self.users.get(user_id, []))

	async def users_sharing(self, interest_ids, *, exclude_user_id):
		return {
			uid: set(ids) & set(interest_ids)
			for uid, ids in self.users.items()
			if uid != exclude_user_id and set(ids) & set(interest_ids)
		}

	async def user_interests(self, user_ids):
		return {uid: [(iid, CATALOG[iid][0]) for iid in self.users.get(uid, [])] for uid in user_ids}

	async def community_interests(self, community_ids):
		return {
			cid: (set(self.communities.get(cid, [])), [CATALOG[iid][0] for iid in self.communities.get(cid, [])])
			for cid in community_ids
		}

	async def catalog(self):
		return [{"id": iid, "name": name, "category": category} for iid, (name, category) in CATALOG.items()]


class FakeProfiles:
	def __init__(self, *user_ids):
		self.rows = [
			{"id": uid, "name": uid.title(), "bio": None, "location": "Montreal", "profile_picture": None,
			 "user_type": "student", "is_verified": False, "is_online": False}
			for uid in user_ids
		]

	async def fetch_profiles(self, user_ids):
		return [row for row in self.rows if row["id"] in user_ids]

	async def search(self, viewer_id, *, q=None, user_type=None, location=None, limit=20, offset=0):
		rows = [row for row in self.rows if row["id"] != viewer_id]
		if q:
			rows = [row for row in rows if q.lower() in row["name"].lower()]
		return rows[offset : offset + limit], len(rows)


class FakeCommunities:
	def __init__(self, pool, joined=()):
		self.pool = pool
		self.joined = set(joined)

	async def joined_community_ids(self, user_id):
		return set(self.joined)

	async def recommendation_pool(self, exclude_ids, *, limit):
		return [row for row in self.pool if row["id"] not in exclude_ids][:limit]


def _service(interests, profiles=None, communities=None):
	return MatchingService(
		interests=interests,
		users=profiles or FakeProfiles(),
		communities=communities or FakeCommunities([]),
	)


@pytest.mark.asyncio
async def test_people_matches_ranked_with_profiles():
	interests = FakeInterestStore(
		{
			"me": ["i-hike", "i-chess", "i-jazz", "i-code"],
			"dana": ["i-hike"],
			"eli": ["i-hike", "i-chess", "i-jazz"],
			"fay": ["i-jazz", "i-code"],
			"gus": [],
		}
	)
	service = _service(interests, FakeProfiles("dana", "eli", "fay", "gus"))

	response = await service.people_matches("me")

	assert [(m.id, m.match_score) for m in response.matches] == [("eli", 75), ("fay", 50), ("dana", 25)]
	assert response.matches[0].interests == ["Hiking", "Chess", "Jazz"]
	body = response.model_dump(by_alias=True, exclude_none=True)
	assert body["matches"][0]["matchScore"] == 75
	assert "message" not in body


@pytest.mark.asyncio
async def test_people_matches_without_interests():
	service = _service(FakeInterestStore({"me": [], "dana": ["i-hike"]}))
	response = await service.people_matches("me")
	assert response.matches == []
	assert response.message == ranking.NO_INTERESTS_MESSAGE


@pytest.mark.asyncio
async def test_community_recommendations_exclude_joined():
	interests = FakeInterestStore(
		{"me": ["i-hike", "i-jazz"]},
		{"c-trail": ["i-hike"], "c-band": ["i-jazz", "i-hike"], "c-club": ["i-chess"]},
	)
	pool = [
		{"id": "c-trail", "name": "Trail Crew", "member_count": 40, "creator_id": "u9", "creator_name": "Ivy"},
		{"id": "c-band", "name": "Jam Band", "member_count": 12},
		{"id": "c-club", "name": "Chess Club", "member_count": 8},
	]
	service = _service(interests, communities=FakeCommunities(pool, joined={"c-band"}))

	response = await service.community_recommendations("me")

	assert [(r.id, r.match_score) for r in response.recommendations] == [("c-trail", 50), ("c-club", 0)]
	trail = response.recommendations[0]
	assert trail.creator is not None and trail.creator.name == "Ivy"
	assert trail.interests == ["Hiking"]
	assert trail.model_dump(by_alias=True)["memberCount"] == 40


@pytest.mark.asyncio
async def test_search_filters_by_interest_and_boosts():
	interests = FakeInterestStore(
		{
			"me": ["i-hike", "i-chess"],
			"amy": ["i-jazz"],
			"ben": ["i-hike"],
			"cal": ["i-hike", "i-chess"],
		}
	)
	service = _service(interests, FakeProfiles("amy", "ben", "cal"))

	everyone = await service.search_users("me")
	assert [(u.id, u.match_score) for u in everyone.users] == [("cal", 100), ("ben", 50), ("amy", 0)]
	assert everyone.total == 3 and everyone.total_pages == 1

	hikers = await service.search_users("me", interests="hiking, Jazz")
	assert {u.id for u in hikers.users} == {"amy", "ben", "cal"}

	jazz = await service.search_users("me", interests="jazz")
	assert [u.id for u in jazz.users] == ["amy"]


@pytest.mark.asyncio
async def test_search_pages():
	service = _service(FakeInterestStore({"me": []}), FakeProfiles("amy", "ben", "cal"))
	response = await service.search_users("me", page=2, limit=2)
	assert [u.id for u in response.users] == ["cal"]
	assert response.total_pages == 2
	assert response.users[0].match_score is None


@pytest.mark.asyncio
async def test_interest_catalog_grouped_by_category():
	service = _service(FakeInterestStore())
	grouped = await service.interest_catalog()
	assert sorted(grouped) == ["games", "music", "outdoors", "tech"]
	assert grouped["music"][0].name == "Jazz"
