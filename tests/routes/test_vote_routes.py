import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def campaign(campaign_factory):
    return campaign_factory(n=4)


@pytest.fixture
def first_round(campaign, rounds_of):
    return rounds_of(campaign)[0].matchups


def _vote_payload(matchup, competitor_id, email="fan@example.com", source="direct"):
    return {
        "matchup_id": matchup.id,
        "competitor_id": competitor_id,
        "voter_name": "Fan",
        "voter_email": email,
        "source": source,
    }


class TestVoteRoutes:

    def test_submit_vote(self, client: TestClient, first_round):
        matchup = first_round[0]
        response = client.post("/votes", json=_vote_payload(matchup, matchup.competitor1_id))

        assert response.status_code == 201
        data = response.json()
        assert data["matchup_id"] == matchup.id
        assert data["competitor_id"] == matchup.competitor1_id
        assert data["source"] == "direct"
        assert "voter_email" not in data

    def test_duplicate_vote_is_a_conflict(self, client: TestClient, first_round):
        matchup = first_round[0]
        client.post("/votes", json=_vote_payload(matchup, matchup.competitor1_id))

        response = client.post("/votes", json=_vote_payload(matchup, matchup.competitor2_id))

        assert response.status_code == 409
        assert response.json() == {
            "error": "already_voted",
            "detail": "You have already voted from this source",
            "matchup_ids": [matchup.id],
        }

    def test_malformed_email(self, client: TestClient, first_round):
        matchup = first_round[0]
        response = client.post("/votes", json=_vote_payload(matchup, matchup.competitor1_id, email="fan-at-example"))

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_input"
        assert response.json()["field"] == "voter_email"

    def test_unknown_source(self, client: TestClient, first_round):
        matchup = first_round[0]
        response = client.post("/votes", json=_vote_payload(matchup, matchup.competitor1_id, source="mystery"))

        assert response.status_code == 400
        assert response.json()["reason"] == "not_found"

    def test_voting_on_a_pending_round(self, client: TestClient, campaign, rounds_of):
        final_matchup = rounds_of(campaign)[1].matchups[0]
        response = client.post("/votes", json=_vote_payload(final_matchup, 1))

        assert response.status_code == 403
        assert response.json()["error"] == "voting_closed"
        assert response.json()["reason"] == "not_open"

    def test_unknown_matchup(self, client: TestClient, campaign):
        payload = {"matchup_id": 999, "competitor_id": 1, "voter_name": "Fan", "voter_email": "fan@example.com"}
        response = client.post("/votes", json=payload)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"


class TestBallotRoutes:

    def test_submit_ballot_then_check(self, client: TestClient, first_round):
        selections = {str(m.id): m.competitor2_id for m in first_round}
        response = client.post(
            "/votes/submit",
            json={
                "campaign_slug": "spring-faceoff",
                "selections": selections,
                "voter_name": "Fan",
                "voter_email": "fan@example.com",
            },
        )

        assert response.status_code == 201
        assert response.json()["votes_count"] == 2

        status = client.get(
            "/votes/check", params={"campaign_slug": "spring-faceoff", "voter_email": "fan@example.com"}
        ).json()
        assert status["all_matchups_voted"] is True
        assert status["voted_count"] == 2
        assert {int(k): v for k, v in status["voted_matchups"].items()} == {m.id: m.competitor2_id for m in first_round}

    def test_ballot_for_unknown_campaign(self, client: TestClient):
        response = client.post(
            "/votes/submit",
            json={"campaign_slug": "nope", "selections": {"1": 1}, "voter_name": "Fan", "voter_email": "fan@example.com"},
        )
        assert response.status_code == 404


class TestCampaignRoutes:

    def test_campaign_view(self, client: TestClient, campaign):
        response = client.get("/campaigns/spring-faceoff")

        assert response.status_code == 200
        data = response.json()
        assert data["slug"] == "spring-faceoff"
        assert data["total_rounds"] == 2
        assert [r["name"] for r in data["rounds"]] == ["Finals", "Championship"]
        first = data["rounds"][0]["matchups"][0]
        assert (first["competitor1"]["seed"], first["competitor2"]["seed"]) == (1, 4)
        assert first["competitor1_votes"] == 0
        assert data["champion"] is None
        assert data["eliminated_competitor_ids"] == []

    def test_active_campaign(self, client: TestClient, campaign):
        response = client.get("/campaigns/active")
        assert response.status_code == 200
        assert response.json()["slug"] == "spring-faceoff"

    def test_no_active_campaign(self, client: TestClient, campaign_factory):
        campaign_factory(n=2, active=False)
        assert client.get("/campaigns/active").status_code == 404

    def test_unknown_campaign(self, client: TestClient):
        response = client.get("/campaigns/missing")
        assert response.status_code == 404
        assert response.json() == {"error": "not_found", "detail": "Campaign 'missing' not found", "entity": "Campaign"}

    def test_list_and_rounds(self, client: TestClient, campaign):
        assert [c["slug"] for c in client.get("/campaigns").json()] == ["spring-faceoff"]
        rounds = client.get("/campaigns/spring-faceoff/rounds").json()
        assert [r["round_number"] for r in rounds] == [1, 2]
        assert [r["status"] for r in rounds] == ["active", "pending"]

    def test_round_status_follows_completion(self, client: TestClient, campaign, rounds_of):
        client.post(f"/admin/rounds/{rounds_of(campaign)[0].id}/complete")

        rounds = client.get("/campaigns/spring-faceoff").json()["rounds"]
        assert [r["status"] for r in rounds] == ["complete", "active"]

    def test_results(self, client: TestClient, first_round):
        matchup = first_round[0]
        client.post("/votes", json=_vote_payload(matchup, matchup.competitor1_id))
        client.post("/votes", json=_vote_payload(matchup, matchup.competitor2_id, email="other@example.com"))
        client.post("/votes", json=_vote_payload(first_round[1], first_round[1].competitor1_id))

        response = client.get("/campaigns/spring-faceoff/results")

        assert response.status_code == 200
        data = response.json()
        assert data["slug"] == "spring-faceoff"
        assert data["stats"] == {"total_votes": 3, "unique_voters": 2, "votes_by_source": {"direct": 3}}
        assert data["rounds"][0]["matchups"][0]["competitor1_votes"] == 1
        assert client.get("/campaigns/active/results").json()["stats"]["total_votes"] == 3

    def test_results_for_unknown_campaign(self, client: TestClient):
        assert client.get("/campaigns/missing/results").status_code == 404


class TestSourceRoutes:

    def test_check_unknown_source(self, client: TestClient, campaign):
        response = client.get("/sources/booth/check", params={"campaign_slug": "spring-faceoff"})

        assert response.status_code == 200
        assert response.json()["allowed"] is False
        assert response.json()["reason"] == "not_found"

    def test_check_direct(self, client: TestClient):
        assert client.get("/sources/direct/check").json()["allowed"] is True

    def test_public_list_hides_inactive_sources(self, client: TestClient, campaign):
        client.post("/admin/vote-sources", json={"code": "live", "name": "Live", "campaign_id": campaign.id})
        client.post(
            "/admin/vote-sources", json={"code": "off", "name": "Off", "campaign_id": campaign.id, "is_active": False}
        )

        assert [s["code"] for s in client.get("/sources").json()] == ["live"]

    def test_health(self, client: TestClient):
        assert client.get("/health").json() == {"status": "ok"}
