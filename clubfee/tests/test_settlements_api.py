"""
Tests for settlement endpoints.
"""
from clubfee.models import SettlementMember


def create_payload(meeting, members, **overrides):
    payload = {
        "meeting_id": meeting.id,
        "member_ids": [m.id for m in members],
        "game_fee": 18000,
        "game_fee_per_game": 2000,
        "member_game_counts": {str(m.id): 3 for m in members},
    }
    payload.update(overrides)
    return payload


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_create_and_get_settlement(client, meeting, members):
    response = client.post("/api/settlements", json=create_payload(meeting, members))

    assert response.status_code == 201
    settlement_id = response.json()["settlement_id"]

    detail = client.get(f"/api/settlements/{settlement_id}").json()
    assert detail["status"] == "pending"
    assert detail["total_amount"] == 18000
    assert [m["amount"] for m in detail["members"]] == [6000, 6000, 6000]
    assert detail["paid_count"] == 0
    assert detail["total_count"] == 3


def test_create_derives_food_rate_from_total(client, meeting, members):
    payload = create_payload(
        meeting, members,
        game_fee_per_game=0,
        food_fee=20000,
        other_fee=3000,
        exclude_food_member_ids=[members[2].id]
    )

    settlement_id = client.post("/api/settlements", json=payload).json()["settlement_id"]
    detail = client.get(f"/api/settlements/{settlement_id}").json()

    # other: 3000 // 3 = 1000, food: 20000 // 2 = 10000
    assert [m["amount"] for m in detail["members"]] == [11000, 11000, 1000]
    assert detail["members"][2]["exclude_food"] is True


def test_create_team_match(client, meeting, members):
    payload = create_payload(
        meeting, members,
        game_fee_per_game=1000,
        team_match={
            "winner_team_member_ids": [members[0].id],
            "loser_team_member_ids": [members[1].id],
            "winner_team_amount": 5000,
            "loser_team_amount": 10000,
        }
    )

    settlement_id = client.post("/api/settlements", json=payload).json()["settlement_id"]
    amounts = [m["amount"] for m in client.get(f"/api/settlements/{settlement_id}").json()["members"]]

    assert amounts == [8000, 13000, 3000]


def test_create_equal_split(client, meeting, members):
    payload = create_payload(meeting, members, game_fee=7000, other_fee=3000, strategy="equal_split")

    settlement_id = client.post("/api/settlements", json=payload).json()["settlement_id"]
    amounts = [m["amount"] for m in client.get(f"/api/settlements/{settlement_id}").json()["members"]]

    assert amounts == [3333, 3333, 3333]


def test_create_rejects_flag_for_non_attendee(client, meeting, members):
    payload = create_payload(meeting, members[:2], penalty_member_ids=[members[2].id])

    assert client.post("/api/settlements", json=payload).status_code == 422


def test_create_rejects_duplicate_attendees(client, meeting, members):
    payload = create_payload(meeting, members, member_ids=[members[0].id, members[0].id])

    assert client.post("/api/settlements", json=payload).status_code == 400


def test_create_unknown_meeting(client, meeting, members):
    payload = create_payload(meeting, members, meeting_id=999)

    assert client.post("/api/settlements", json=payload).status_code == 404


def test_payment_flow_and_completion(client, db, meeting, members):
    settlement_id = client.post("/api/settlements", json=create_payload(meeting, members)).json()["settlement_id"]
    base = f"/api/settlements/{settlement_id}/members"

    assert client.post(f"{base}/{members[0].id}/paid").status_code == 200
    assert client.post(f"{base}/{members[1].id}/toggle").json()["is_paid"] is True
    assert client.post(f"{base}/{members[1].id}/unpaid").status_code == 200

    response = client.post(f"/api/settlements/{settlement_id}/complete")
    assert response.status_code == 200
    assert client.post(f"/api/settlements/{settlement_id}/complete").status_code == 200

    detail = client.get(f"/api/settlements/{settlement_id}").json()
    assert detail["status"] == "completed"
    assert detail["paid_count"] == 1

    completed = client.get("/api/settlements", params={"status": "completed"}).json()
    assert [s["id"] for s in completed] == [settlement_id]
    assert client.get("/api/settlements", params={"status": "pending"}).json() == []


def test_update_amount(client, meeting, members):
    settlement_id = client.post("/api/settlements", json=create_payload(meeting, members)).json()["settlement_id"]
    url = f"/api/settlements/{settlement_id}/members/{members[0].id}/amount"

    assert client.put(url, json={"amount": 4500}).status_code == 200
    assert client.put(url, json={"amount": -1}).status_code == 422

    detail = client.get(f"/api/settlements/{settlement_id}").json()
    assert detail["members"][0]["amount"] == 4500


def test_billing_message(client, meeting, members):
    settlement_id = client.post("/api/settlements", json=create_payload(meeting, members)).json()["settlement_id"]
    client.post(f"/api/settlements/{settlement_id}/members/{members[0].id}/paid")

    message = client.get(f"/api/settlements/{settlement_id}/message").json()["message"]

    assert "📅 모임일: 2024-03-09" in message
    assert "👤 1인당 금액: 6,000원" in message
    assert "⏳ 미납: 이영희, 박민수" in message


def test_meeting_settlement(client, meeting, members):
    assert client.get(f"/api/settlements/meeting/{meeting.id}").status_code == 404

    settlement_id = client.post("/api/settlements", json=create_payload(meeting, members)).json()["settlement_id"]

    assert client.get(f"/api/settlements/meeting/{meeting.id}").json()["id"] == settlement_id


def test_delete_settlement(client, db, meeting, members):
    settlement_id = client.post("/api/settlements", json=create_payload(meeting, members)).json()["settlement_id"]

    assert client.delete(f"/api/settlements/{settlement_id}").status_code == 200
    assert client.get(f"/api/settlements/{settlement_id}").status_code == 404
    assert db.query(SettlementMember).count() == 0
    assert client.delete(f"/api/settlements/{settlement_id}").status_code == 404


def test_unknown_settlement_operations(client, members):
    assert client.post(f"/api/settlements/999/members/{members[0].id}/paid").status_code == 404
    assert client.post("/api/settlements/999/complete").status_code == 404
    assert client.get("/api/settlements/999/message").status_code == 404


def test_discount_defaults_to_member_directory(client, db, meeting, members):
    members[1].is_discounted = True
    db.commit()

    default_id = client.post("/api/settlements", json=create_payload(meeting, members)).json()["settlement_id"]
    explicit_id = client.post(
        "/api/settlements", json=create_payload(meeting, members, discounted_member_ids=[])
    ).json()["settlement_id"]

    default_amounts = [m["amount"] for m in client.get(f"/api/settlements/{default_id}").json()["members"]]
    explicit_amounts = [m["amount"] for m in client.get(f"/api/settlements/{explicit_id}").json()["members"]]
    assert default_amounts == [6000, 3000, 6000]
    assert explicit_amounts == [6000, 6000, 6000]


def test_create_rejects_unknown_member(client, meeting, members):
    payload = create_payload(meeting, members, member_ids=[members[0].id, 4242], member_game_counts={})

    response = client.post("/api/settlements", json=payload)

    assert response.status_code == 404
    assert "4242" in response.json()["detail"]


def test_team_match_defaults_from_meeting(client, db, meeting, members):
    meeting.set_team_match([members[0].id], [members[1].id], 5000, 10000)
    db.commit()

    payload = create_payload(meeting, members, game_fee_per_game=1000)
    settlement_id = client.post("/api/settlements", json=payload).json()["settlement_id"]
    amounts = [m["amount"] for m in client.get(f"/api/settlements/{settlement_id}").json()["members"]]

    assert amounts == [8000, 13000, 3000]


def test_team_match_shown_in_billing_message(client, meeting, members):
    payload = create_payload(
        meeting, members,
        game_fee_per_game=1000,
        team_match={
            "winner_team_member_ids": [members[0].id],
            "loser_team_member_ids": [members[1].id],
            "winner_team_amount": 5000,
            "loser_team_amount": 10000,
        }
    )
    settlement_id = client.post("/api/settlements", json=payload).json()["settlement_id"]

    message = client.get(f"/api/settlements/{settlement_id}/message").json()["message"]

    assert "🎯 팀전" in message
    assert "  🏆 이긴팀: 김철수 (+5,000원)" in message
    assert "  💸 진팀: 이영희 (+10,000원)" in message
    assert "  이영희 💸: 13,000원 (게임비)" in message
