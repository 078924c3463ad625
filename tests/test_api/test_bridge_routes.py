"""
Tests for the bridge API routes.

Every test runs against the in-memory ledgers from ``tests/fakes.py`` through
the ``test_client`` fixture; no node is contacted.
"""

import pytest

from ledger_bridge import __version__
from ledger_bridge.chain.errors import LedgerOperationContext, SubmissionError
from tests.fakes import ALICE, BOB, added_receipt, make_receipt, tx_hash

ITEM = {"name": "Ginger", "latin_name": "Zingiber officinale", "dosage": "1 g"}


def _confirm_body(tx: str, subject_id="7", initiator: str = ALICE) -> dict:
    return {"private_tx_id": tx, "subject_id": subject_id, "initiator": initiator}


# ============================================================================
# HEALTH
# ============================================================================


@pytest.mark.api
class TestHealth:
    def test_root(self, test_client):
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json() == {"message": "Ledger Bridge API", "version": __version__}

    def test_health_names_contracts(self, test_client, services):
        response = test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["private_contract"] == services.private.address
        assert body["public_contract"] == services.public.address


# ============================================================================
# PREPARE
# ============================================================================


@pytest.mark.api
class TestPrepare:
    def test_prepare_add(self, test_client, private_ledger):
        response = test_client.post("/prepare-add", json={**ITEM, "initiator": ALICE})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "PREPARED"
        assert body["contract_address"] == private_ledger.address
        assert body["item"]["latin_name"] == "Zingiber officinale"
        assert private_ledger.sent == []

    def test_prepare_add_requires_name(self, test_client):
        response = test_client.post("/prepare-add", json={"name": "", "initiator": ALICE})

        assert response.status_code == 422

    def test_prepare_edit_by_owner(self, test_client, private_ledger):
        item_id = private_ledger.add_item(ALICE)

        response = test_client.post(
            "/prepare-edit", json={**ITEM, "initiator": ALICE, "item_id": item_id}
        )

        assert response.status_code == 200
        assert response.json()["subject_id"] == str(item_id)

    def test_prepare_edit_by_stranger_is_forbidden(self, test_client, private_ledger):
        item_id = private_ledger.add_item(ALICE)

        response = test_client.post(
            "/prepare-edit", json={**ITEM, "initiator": BOB, "item_id": item_id}
        )

        assert response.status_code == 403
        assert response.json()["success"] is False

    def test_prepare_edit_missing_item(self, test_client):
        response = test_client.post(
            "/prepare-edit", json={**ITEM, "initiator": ALICE, "item_id": 99}
        )

        assert response.status_code == 404
        assert "not found" in response.json()["message"]


# ============================================================================
# CONFIRM
# ============================================================================


@pytest.mark.api
class TestConfirm:
    def test_confirm_add_synced(self, test_client, private_ledger, public_ledger):
        tx = tx_hash()
        private_ledger.script_receipts(tx, [added_receipt(tx, 7)])

        response = test_client.post("/confirm-add", json=_confirm_body(tx, subject_id=7))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "SYNCED"
        assert body["subject_id"] == "7"
        assert body["record_id"] == "0"
        assert public_ledger.records[0].private_tx_id == tx

    def test_confirm_add_reverted_is_400(self, test_client, private_ledger):
        tx = tx_hash()
        private_ledger.script_receipts(tx, [make_receipt(tx, status=False)])

        response = test_client.post("/confirm-add", json=_confirm_body(tx))

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["status"] == "VERIFICATION_FAILED"

    def test_confirm_add_sender_mismatch(self, test_client, private_ledger):
        tx = tx_hash()
        private_ledger.script_receipts(tx, [added_receipt(tx, 7, sender=BOB)])

        response = test_client.post("/confirm-add", json=_confirm_body(tx))

        assert response.status_code == 400
        assert response.json()["error"] == {
            "kind": "sender_mismatch",
            "detail": {"expected": ALICE, "actual": BOB},
        }

    def test_reservation_failure_is_500(self, test_client, private_ledger, public_ledger):
        public_ledger.reserve_error = SubmissionError(
            context=LedgerOperationContext("public.send", "insufficient funds")
        )
        tx = tx_hash()
        private_ledger.script_receipts(tx, [added_receipt(tx, 7)])

        response = test_client.post("/confirm-add", json=_confirm_body(tx))

        assert response.status_code == 500
        assert response.json()["message"] == "Failed to create public record: insufficient funds"

    def test_patch_timeout_is_partial_success(self, test_client, private_ledger, public_ledger):
        public_ledger.patch_error = SubmissionError(
            context=LedgerOperationContext("public.wait_for_receipt", "timeout after 120 seconds")
        )
        tx = tx_hash()
        private_ledger.script_receipts(tx, [added_receipt(tx, 7)])

        response = test_client.post("/confirm-add", json=_confirm_body(tx))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["status"] == "RECORD_TIMEOUT"
        assert body["is_timeout"] is True
        assert body["private"]["tx_hash"] == tx

    def test_unverified_is_partial_success(self, test_client):
        response = test_client.post("/confirm-add", json=_confirm_body(tx_hash()))

        assert response.status_code == 200
        assert response.json()["status"] == "VERIFICATION_PENDING"

    def test_confirm_edit(self, test_client, harness, private_ledger, first_wallet):
        item_id = private_ledger.add_item(first_wallet.address)
        receipt = private_ledger.send("editItem", item_id, "Ginger", signer=first_wallet)

        response = test_client.post(
            "/confirm-edit",
            json=_confirm_body(receipt.tx_hash, subject_id=str(item_id), initiator=first_wallet.address),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "SYNCED"

    def test_confirm_requires_tx_id(self, test_client):
        response = test_client.post("/confirm-add", json=_confirm_body(""))

        assert response.status_code == 422

    def test_timeout_seconds_bounds_the_call(self, test_client, services, private_ledger, monkeypatch):
        budgets = []
        deadline_for = services.engine.deadline_for

        def track(timeout_seconds):
            deadline = deadline_for(timeout_seconds)
            budgets.append((timeout_seconds, deadline.remaining()))
            return deadline

        monkeypatch.setattr(services.engine, "deadline_for", track)
        tx = tx_hash()
        private_ledger.script_receipts(tx, [added_receipt(tx, 7)])

        response = test_client.post("/confirm-add", json={**_confirm_body(tx), "timeout_seconds": 5})

        assert response.status_code == 200
        assert response.json()["status"] == "SYNCED"
        assert budgets[0][0] == 5
        assert budgets[0][1] <= 5

    def test_timeout_seconds_must_be_positive(self, test_client):
        response = test_client.post(
            "/confirm-add", json={**_confirm_body(tx_hash()), "timeout_seconds": 0}
        )

        assert response.status_code == 422


# ============================================================================
# ITEM READS
# ============================================================================


@pytest.mark.api
class TestItemReads:
    def test_get_item(self, test_client, private_ledger):
        item_id = private_ledger.add_item(ALICE, name="Ginger")

        response = test_client.get(f"/items/{item_id}")

        assert response.status_code == 200
        assert response.json()["item"]["name"] == "Ginger"
        assert response.json()["item"]["owner"] == ALICE

    def test_missing_item_is_404(self, test_client):
        assert test_client.get("/items/5").status_code == 404

    def test_list_items(self, test_client, private_ledger):
        private_ledger.add_item(ALICE, name="a")
        private_ledger.add_item(ALICE, name="b")

        body = test_client.get("/items", params={"page": 1, "limit": 1}).json()

        assert body["total"] == 2
        assert [item["name"] for item in body["items"]] == ["a"]

    def test_average_rating(self, test_client, private_ledger):
        item_id = private_ledger.add_item(ALICE, rating_total=7, rating_count=2)

        body = test_client.get(f"/items/{item_id}/average-rating").json()

        assert body["average_rating"] == 3.5

    def test_ratings_and_comments(self, test_client, private_ledger):
        item_id = private_ledger.add_item(ALICE)
        private_ledger.ratings[item_id] = [4]
        private_ledger.comments[item_id] = [(BOB, "nice", 1)]

        assert test_client.get(f"/items/{item_id}/ratings").json()["ratings"] == [4]
        comments = test_client.get(f"/items/{item_id}/comments").json()["comments"]
        assert comments == [{"user": BOB, "comment": "nice", "timestamp": "1"}]

    def test_search(self, test_client, private_ledger):
        private_ledger.add_item(ALICE, name="Ginger")
        private_ledger.add_item(BOB, name="Turmeric")

        response = test_client.get("/search", params={"name": "turm"})

        assert response.status_code == 200
        items = response.json()["items"]
        assert [(item["item_id"], item["name"]) for item in items] == [("1", "Turmeric")]

    def test_search_without_criteria_returns_everything(self, test_client, private_ledger):
        private_ledger.add_item(ALICE, name="Ginger")

        assert len(test_client.get("/search").json()["items"]) == 1


# ============================================================================
# RATINGS, LIKES AND COMMENTS
# ============================================================================


@pytest.mark.api
class TestInteractions:
    def test_prepare_rate(self, test_client, private_ledger):
        item_id = private_ledger.add_item(ALICE)

        response = test_client.post(
            "/prepare-rate", json={"initiator": BOB, "item_id": item_id, "rating": 5}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "PREPARED"
        assert body["rating"] == 5
        assert body["transaction_data"].startswith("0x")
        assert private_ledger.sent == []

    @pytest.mark.parametrize("rating", [0, 6])
    def test_prepare_rate_out_of_range(self, test_client, private_ledger, rating):
        item_id = private_ledger.add_item(ALICE)

        response = test_client.post(
            "/prepare-rate", json={"initiator": BOB, "item_id": item_id, "rating": rating}
        )

        assert response.status_code == 422

    def test_prepare_like(self, test_client, private_ledger):
        item_id = private_ledger.add_item(ALICE)

        response = test_client.post("/prepare-like", json={"initiator": BOB, "item_id": item_id})

        assert response.status_code == 200
        assert response.json()["item_id"] == str(item_id)

    def test_prepare_like_missing_item_is_404(self, test_client):
        response = test_client.post("/prepare-like", json={"initiator": BOB, "item_id": 3})

        assert response.status_code == 404

    def test_prepare_comment(self, test_client, private_ledger):
        item_id = private_ledger.add_item(ALICE)

        response = test_client.post(
            "/prepare-comment", json={"initiator": BOB, "item_id": item_id, "comment": "Helps"}
        )

        assert response.status_code == 200
        assert response.json()["comment"] == "Helps"

    def test_prepare_blank_comment_is_400(self, test_client, private_ledger):
        item_id = private_ledger.add_item(ALICE)

        response = test_client.post(
            "/prepare-comment", json={"initiator": BOB, "item_id": item_id, "comment": "  "}
        )

        assert response.status_code == 400


# ============================================================================
# PUBLIC RECORDS
# ============================================================================


@pytest.mark.api
class TestPublicRecords:
    def test_count_and_list(self, test_client, public_ledger):
        public_ledger.seed("1", 100)
        public_ledger.seed("2", 200)

        assert test_client.get("/public/records/count").json()["count"] == 2
        body = test_client.get("/public/records").json()
        assert body["total"] == 2
        assert body["records"][1]["subject_id"] == "2"

    def test_unknown_record_is_404(self, test_client):
        response = test_client.get("/public/records/3")

        assert response.status_code == 404
        assert "does not exist" in response.json()["message"]

    def test_unreadable_record_is_502(self, test_client, public_ledger):
        public_ledger.seed("1", 100)
        public_ledger.unreadable.add(0)

        response = test_client.get("/public/records/0")

        assert response.status_code == 502
        assert response.json()["success"] is False

    def test_history(self, test_client, public_ledger):
        public_ledger.seed("1", 100)
        public_ledger.seed("1", 300)
        public_ledger.seed("2", 150)
        public_ledger.seed("1", 200)

        body = test_client.get("/public/history/1", params={"limit": 2}).json()

        assert [r["created_at"] for r in body["records"]] == ["300", "200"]
        assert [r["kind"] for r in body["records"]] == ["edit", "edit"]
        assert body["pagination"]["total_records"] == 3
        assert body["pagination"]["total_pages"] == 2
        assert body["pagination"]["has_next_page"] is True

    def test_history_rejects_page_zero(self, test_client):
        assert test_client.get("/public/history/1", params={"page": 0}).status_code == 422

    def test_resync_finishes_placeholder(self, test_client, store, private_ledger, public_ledger):
        reservation = store.reserve_record("7", ALICE)
        tx = tx_hash()
        private_ledger.script_receipts(tx, [added_receipt(tx, 7)])

        response = test_client.post(
            f"/public/records/{reservation.record_id}/resync",
            json={"private_tx_id": tx, "initiator": ALICE},
        )

        assert response.status_code == 200
        assert response.json()["status"] == "SYNCED"
        assert public_ledger.records[reservation.record_id].private_tx_id == tx

    def test_resync_unknown_record(self, test_client):
        response = test_client.post(
            "/public/records/8/resync", json={"private_tx_id": tx_hash(), "initiator": ALICE}
        )

        assert response.status_code == 404


# ============================================================================
# HARNESS
# ============================================================================


@pytest.mark.api
class TestHarnessRoutes:
    def test_add_item(self, test_client, first_wallet, public_ledger):
        response = test_client.post("/harness/add-item", json={**ITEM, "user_id": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "SYNCED"
        assert body["harness"]["wallet"] == first_wallet.address
        assert len(public_ledger.records) == 1

    def test_unknown_user_is_400(self, test_client):
        response = test_client.post("/harness/add-item", json={**ITEM, "user_id": "9"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid test user ID"

    def test_disabled_harness_is_404(self, test_client, harness):
        harness.enabled = False

        response = test_client.post("/harness/add-item", json={**ITEM, "user_id": 1})

        assert response.status_code == 404

    def test_edit_item(self, test_client, private_ledger, first_wallet):
        item_id = private_ledger.add_item(first_wallet.address)

        response = test_client.post(
            "/harness/edit-item", json={**ITEM, "user_id": "1", "item_id": item_id}
        )

        assert response.status_code == 200
        assert response.json()["subject_id"] == str(item_id)
