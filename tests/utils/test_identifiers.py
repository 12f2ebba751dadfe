"""Tests for identifier helpers."""

import uuid

from raiinmaker_verification.utils.identifiers import (
    auto_approved_task_id,
    derived_uuid,
    ensure_uuid,
    is_uuid,
    short_id,
)


class TestUuidHelpers:
    def test_valid_uuid_kept(self) -> None:
        value = "3f2b9c1e-aaaa-4bbb-8ccc-123456789abc"
        assert ensure_uuid(value) == value

    def test_invalid_value_replaced(self) -> None:
        value = ensure_uuid("user-42")
        assert value != "user-42"
        assert is_uuid(value)

    def test_none_replaced(self) -> None:
        assert is_uuid(ensure_uuid(None))

    def test_derived_uuid_is_deterministic(self) -> None:
        assert derived_uuid("verification-abc") == derived_uuid("verification-abc")
        assert derived_uuid("verification-abc") != derived_uuid("verification-abd")
        assert uuid.UUID(derived_uuid("x")).version == 5


class TestAutoApprovedTaskId:
    def test_same_content_and_time_same_id(self) -> None:
        assert auto_approved_task_id("Hello world", 1700000000000) == auto_approved_task_id(
            "Hello world", 1700000000000
        )

    def test_different_time_different_id(self) -> None:
        assert auto_approved_task_id("Hello world", 1) != auto_approved_task_id("Hello world", 2)

    def test_different_content_different_id(self) -> None:
        assert auto_approved_task_id("Hello", 1) != auto_approved_task_id("World", 1)


class TestShortId:
    def test_long_id_shortened(self) -> None:
        assert short_id("3f2b9c1e-aaaa") == "3f2b9c1e..."

    def test_short_id_unchanged(self) -> None:
        assert short_id("abc") == "abc"
