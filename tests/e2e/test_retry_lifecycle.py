"""
E2E tests following one obligation through repeated collection failures.

Scenarios:
- card_then_bank: external failure retried on card, then bank/card Friday retries
- eft_dead_end: retry chain ends in an EFT failure needing manual review
"""

import pytest
from fastapi.testclient import TestClient


@pytest.mark.integration
def test_card_then_bank_retry_chain(client: TestClient, seed_attempt, reference_time):
    """
    Three failures on the same obligation build a linked chain.
    Expected: sequence numbers 0, 1, 2, 3 and lineage oldest first
    """
    original = seed_attempt(days_overdue=15)

    first = client.post(
        f"/v1/attempts/{original.id}/failure",
        json={"code": 904, "reference_time": reference_time.isoformat()},
    ).json()
    assert first["action"] == "instant"

    second = client.post(
        f"/v1/attempts/{first['successor']['id']}/failure",
        json={"code": 441, "reference_time": reference_time.isoformat()},
    ).json()
    assert second["action"] == "scheduled_friday"
    assert second["successor"]["date"] == "2024-03-15"

    third = client.post(
        f"/v1/attempts/{second['successor']['id']}/failure",
        json={"code": 701, "reference_time": reference_time.isoformat()},
    ).json()
    latest_id = third["successor"]["id"]

    response = client.get(f"/v1/attempts/{latest_id}/lineage")

    assert response.status_code == 200
    chain = response.json()["attempts"]
    assert [a["retry_sequence_nb"] for a in chain] == [0, 1, 2, 3]
    assert chain[0]["id"] == original.id
    assert [a["status"] for a in chain] == ["failed", "failed", "failed", "scheduled"]
    for prev, nxt in zip(chain, chain[1:]):
        assert nxt["retry_prev_attempt_id"] == prev["id"]


@pytest.mark.integration
def test_eft_dead_end(client: TestClient, seed_attempt, reference_time):
    """
    A retry that fails with an EFT code stops the chain.
    Expected: 409 on the EFT failure, no further successor
    """
    original = seed_attempt(days_overdue=40)

    first = client.post(
        f"/v1/attempts/{original.id}/failure",
        json={"code": 601, "reference_time": reference_time.isoformat()},
    ).json()
    assert first["action"] == "scheduled_friday_eom"
    successor_id = first["successor"]["id"]

    response = client.post(
        f"/v1/attempts/{successor_id}/failure",
        json={"code": 710, "reference_time": reference_time.isoformat()},
    )
    assert response.status_code == 409

    chain = client.get(f"/v1/attempts/{successor_id}/lineage").json()["attempts"]
    assert len(chain) == 2
    assert chain[-1]["status"] == "failed"
    assert chain[-1]["code"] == 710
