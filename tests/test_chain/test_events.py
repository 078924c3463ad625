"""Tests for receipt event lookup."""

import pytest

from ledger_bridge.chain.events import event_topic, find_event
from ledger_bridge.chain.types import LogEntry
from tests.fakes import (
    ALICE,
    ITEM_ADDED,
    ITEM_EDITED,
    PRIVATE_CONTRACT,
    PUBLIC_CONTRACT,
    event_log,
    make_receipt,
    tx_hash,
)

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


@pytest.mark.unit
class TestEventTopic:
    def test_known_signature_hash(self):
        assert event_topic("Transfer(address,address,uint256)") == TRANSFER_TOPIC

    def test_whitespace_is_ignored(self):
        assert event_topic("Transfer(address, address, uint256)") == TRANSFER_TOPIC

    @pytest.mark.parametrize("signature", ["", "Transfer", "Transfer(address"])
    def test_rejects_non_signatures(self, signature):
        with pytest.raises(ValueError):
            event_topic(signature)


@pytest.mark.unit
class TestFindEvent:
    def test_found(self):
        log = event_log(PRIVATE_CONTRACT, ITEM_ADDED, 5, ALICE)
        receipt = make_receipt(tx_hash(), logs=(log,))

        lookup = find_event(receipt, PRIVATE_CONTRACT, ITEM_ADDED)

        assert lookup.found
        assert lookup.log is log
        assert lookup.log.indexed_int(1) == 5

    def test_contract_address_is_case_insensitive(self):
        log = event_log(PRIVATE_CONTRACT.upper().replace("0X", "0x"), ITEM_ADDED, 5)
        receipt = make_receipt(tx_hash(), logs=(log,))

        assert find_event(receipt, PRIVATE_CONTRACT, ITEM_ADDED).found

    def test_not_found_lists_available_topics(self):
        receipt = make_receipt(
            tx_hash(), logs=(event_log(PRIVATE_CONTRACT, ITEM_EDITED, 5, ALICE),)
        )

        lookup = find_event(receipt, PRIVATE_CONTRACT, ITEM_ADDED)

        assert lookup.status == "not_found"
        assert lookup.available_topics == (event_topic(ITEM_EDITED),)
        assert lookup.detail == f"Expected event not found: {ITEM_ADDED}"

    def test_logs_from_other_contracts_are_ignored(self):
        receipt = make_receipt(
            tx_hash(), logs=(event_log(PUBLIC_CONTRACT, ITEM_ADDED, 5, ALICE),)
        )

        lookup = find_event(receipt, PRIVATE_CONTRACT, ITEM_ADDED)

        assert lookup.status == "no_contract_logs"
        assert PRIVATE_CONTRACT in lookup.detail

    def test_log_without_topics_does_not_match(self):
        receipt = make_receipt(tx_hash(), logs=(LogEntry(address=PRIVATE_CONTRACT, topics=()),))

        lookup = find_event(receipt, PRIVATE_CONTRACT, ITEM_ADDED)

        assert lookup.status == "not_found"
        assert lookup.available_topics == ("",)

    def test_missing_log_list_is_malformed(self):
        receipt = make_receipt(tx_hash(), logs=None)

        lookup = find_event(receipt, PRIVATE_CONTRACT, ITEM_ADDED)

        assert lookup.status == "malformed"
        assert not lookup.found
