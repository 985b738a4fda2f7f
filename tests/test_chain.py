"""Tests for chain steps and chain bookkeeping."""

import math

import pytest
from structlog.testing import capture_logs

from sluice.core.errors import ConfigurationError, Err, ErrorCode, Ok
from sluice.validation import Chain


async def apply(chain: Chain, value, baton=None):
    return await chain.apply(value, baton)


class TestBookkeeping:
    """Step positions, flags and help."""

    def test_positions(self) -> None:
        a = Chain().length(1).is_numeric()
        b = Chain().length(1).is_numeric().optional()

        assert a.get_validator_pos("length") == 0
        assert a.get_validator_pos("is_numeric") == 1
        assert a.get_validator_pos("in_array") == -1
        assert a.has_validator("length")
        assert not a.has_validator("in_array")
        assert b.get_validator_pos("optional") == 2
        assert b.validators[0].name == "optional"
        assert b.get_validator_at_pos(2).name == "optional"
        assert b.get_validator_at_pos(6) is None

    def test_flags(self) -> None:
        chain = Chain().is_int().optional().immutable().update_required().rename("other")

        assert chain.is_optional
        assert chain.is_immutable
        assert chain.is_update_required
        assert chain.target == "other"

    def test_help(self) -> None:
        chain = Chain().is_int().range(1, 10).trim().optional()

        assert chain.help() == ["Optional", "Integer", "Value (1..10)"]

    def test_regex_help(self) -> None:
        assert Chain().regex("^a$", "i").help() == ["String matching the regex /^a$/i"]

    def test_clone_is_independent(self) -> None:
        original = Chain().is_int()
        copy = original.clone().optional()

        assert not original.is_optional
        assert len(original.validators) == 1
        assert len(copy.validators) == 2

    def test_single_num_items(self) -> None:
        with pytest.raises(ConfigurationError, match="single numItems validator") as exc_info:
            Chain().is_array(Chain().is_int()).num_items(2).num_items(2)

        assert exc_info.value.code == ErrorCode.E1001_DUPLICATE_NUM_ITEMS

    @pytest.mark.parametrize("pattern", ["", None])
    def test_missing_pattern(self, pattern) -> None:
        with pytest.raises(ConfigurationError, match="No pattern provided"):
            Chain().regex(pattern)

    @pytest.mark.asyncio
    async def test_non_result_step_fails_the_value(self, validators) -> None:
        validators.add("broken", None, lambda value, baton: value)

        with capture_logs() as logs:
            result = await apply(Chain(validators).custom("broken"), 1)

        assert result == Err("Validator 'broken' must return Ok or Err")
        assert logs[0]["event"] == "validator_bad_return"
        assert logs[0]["returned"] == "int"

    @pytest.mark.asyncio
    async def test_clone_binds_num_items_to_copy(self) -> None:
        original = Chain().is_array(Chain().is_int())
        bounded = original.clone().num_items(1, 2)
        keyed = Chain().is_hash(Chain().is_string(), Chain().is_int()).clone().num_items(1, 1)

        assert await apply(original, [1, 2, 3]) == Ok([1, 2, 3])
        assert (await apply(bounded, [1, 2, 3])).is_err()
        assert await apply(bounded, [1, 2]) == Ok([1, 2])
        assert (await apply(keyed, {"a": 1, "b": 2})).is_err()


class TestApply:
    """Values thread through steps; the first failure wins."""

    @pytest.mark.asyncio
    async def test_conversion_feeds_next_step(self) -> None:
        assert await apply(Chain().is_int().to_int().range(1, 20), "10") == Ok(10)

    @pytest.mark.asyncio
    async def test_first_failure_wins(self) -> None:
        assert await apply(Chain().length(1).is_numeric(), "") == Err("String is not in range (1..Infinity)")
        assert await apply(Chain().length(1).is_numeric(), "a") == Err("Invalid number")

    @pytest.mark.asyncio
    async def test_empty_chain_passes_through(self) -> None:
        assert await apply(Chain(), {"x": 1}) == Ok({"x": 1})


class TestStringSteps:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("value,ok", [(1, True), ("1", True), (-17, True), ("test", False), ("01", False)])
    async def test_is_int(self, value, ok) -> None:
        result = await apply(Chain().is_int(), value)

        assert result == (Ok(value) if ok else Err("Invalid integer"))

    @pytest.mark.asyncio
    async def test_is_numeric(self) -> None:
        assert await apply(Chain().is_numeric(), "0001") == Ok("0001")
        assert await apply(Chain().is_numeric(), "1.5") == Err("Invalid number")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["1.0", "-1.5", ".5", "1e3", 2.25, "10"])
    async def test_is_decimal(self, value) -> None:
        assert await apply(Chain().is_decimal(), value) == Ok(value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", ["", "abc", "1.2.3", "-"])
    async def test_is_decimal_rejects(self, value) -> None:
        assert await apply(Chain().is_float(), value) == Err("Invalid decimal")

    @pytest.mark.asyncio
    async def test_is_email(self) -> None:
        assert await apply(Chain().is_email(), "test@example.com") == Ok("test@example.com")
        assert await apply(Chain().is_email(), "invalidemail@") == Err("Invalid email")

    @pytest.mark.asyncio
    async def test_is_url(self) -> None:
        assert await apply(Chain().is_url(), "http://www.example.com") == Ok("http://www.example.com")
        assert await apply(Chain().is_url(), "invalid/") == Err("Invalid URL")

    @pytest.mark.asyncio
    async def test_alpha(self) -> None:
        assert await apply(Chain().is_alpha(), "ABC") == Ok("ABC")
        assert await apply(Chain().is_alpha(), "123") == Err("Invalid characters")
        assert await apply(Chain().is_alphanumeric(), "a1") == Ok("a1")
        assert await apply(Chain().is_alphanumeric(), "a-1") == Err("Invalid characters")

    @pytest.mark.asyncio
    async def test_case(self) -> None:
        assert await apply(Chain().is_lowercase(), "abc") == Ok("abc")
        assert await apply(Chain().is_lowercase(), "aBc") == Err("Invalid characters")
        assert await apply(Chain().is_uppercase(), "ABC") == Ok("ABC")
        assert await apply(Chain().is_uppercase(), "AbC") == Err("Invalid characters")

    @pytest.mark.asyncio
    async def test_null_checks(self) -> None:
        assert await apply(Chain().not_null(), "a") == Ok("a")
        assert await apply(Chain().not_null(), None) == Err("Invalid characters")
        assert await apply(Chain().is_null(), None) == Ok(None)
        assert await apply(Chain().is_null(), "a") == Err("Invalid characters")

    @pytest.mark.asyncio
    async def test_not_empty(self) -> None:
        assert await apply(Chain().not_empty(), "a") == Ok("a")
        assert await apply(Chain().not_empty(), "   ") == Err("String is empty")

    @pytest.mark.asyncio
    async def test_equals(self) -> None:
        assert await apply(Chain().equals(123), "123") == Ok("123")
        assert await apply(Chain().equals("a"), "b") == Err("Not equal")

    @pytest.mark.asyncio
    async def test_contains(self) -> None:
        assert await apply(Chain().contains("abc"), "xabcx") == Ok("xabcx")
        assert await apply(Chain().contains("abc"), "cba") == Err("Invalid characters")
        assert await apply(Chain().not_contains("abc"), "cba") == Ok("cba")
        assert await apply(Chain().not_contains("abc"), "xabcx") == Err("Invalid characters")

    @pytest.mark.asyncio
    async def test_regex(self) -> None:
        assert await apply(Chain().regex("^a$"), "a") == Ok("a")
        assert await apply(Chain().regex("^a$"), "b") == Err("Invalid characters")
        assert await apply(Chain().regex("^a$", "i"), "A") == Ok("A")
        assert await apply(Chain().not_regex("e"), "foobar") == Ok("foobar")
        assert await apply(Chain().not_regex("e"), "cheese") == Err("Invalid characters")

    @pytest.mark.asyncio
    async def test_length(self) -> None:
        assert await apply(Chain().length(1, 2), "1") == Ok("1")
        assert await apply(Chain().length(1, 2), "") == Err("String is not in range (1..2)")
        assert await apply(Chain().length(1, 2), "abc") == Err("String is not in range (1..2)")

    @pytest.mark.asyncio
    async def test_is_string(self) -> None:
        assert await apply(Chain().is_string(), "a") == Ok("a")
        assert await apply(Chain().is_string(), 1) == Err("Not a string")


class TestSanitizers:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("value,expected", [
        ("test", True), (True, True), (1, True), ("false", False), (0, False), ("", False), (False, False),
        (None, False),
    ])
    async def test_to_boolean(self, value, expected) -> None:
        assert await apply(Chain().to_boolean(), value) == Ok(expected)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value,expected", [
        ("test", False), (True, True), (1, True), ("1", True), ("true", True), ("false", False), (None, False),
    ])
    async def test_to_boolean_strict(self, value, expected) -> None:
        assert await apply(Chain().to_boolean_strict(), value) == Ok(expected)

    @pytest.mark.asyncio
    async def test_to_int(self) -> None:
        assert await apply(Chain().to_int(), "12abc") == Ok(12)
        result = await apply(Chain().to_int(), "abc")
        assert math.isnan(result.value)

    @pytest.mark.asyncio
    async def test_to_float(self) -> None:
        assert await apply(Chain().to_float(), "1.5e2x") == Ok(150.0)
        assert math.isnan((await apply(Chain().to_float(), "x")).value)

    @pytest.mark.asyncio
    async def test_array_of_conversions(self) -> None:
        assert await apply(Chain().is_array(Chain().is_int().to_int()), ["1", "2", "3"]) == Ok([1, 2, 3])

    @pytest.mark.asyncio
    async def test_entities(self) -> None:
        assert await apply(Chain().entity_decode(), "&lt;div&gt;&amp;") == Ok("<div>&")
        assert await apply(Chain().entity_encode(), "<div>&") == Ok("&lt;div&gt;&amp;")

    @pytest.mark.asyncio
    async def test_trim(self) -> None:
        assert await apply(Chain().trim(), " cheese ") == Ok("cheese")
        assert await apply(Chain().trim("QV"), "VQQcheeseQQV") == Ok("cheese")
        assert await apply(Chain().trim("QV"), "AcheeseA") == Ok("AcheeseA")
        assert await apply(Chain().ltrim(), "  cheese ") == Ok("cheese ")
        assert await apply(Chain().rtrim(), " cheese  ") == Ok(" cheese")

    @pytest.mark.asyncio
    async def test_if_null(self) -> None:
        assert await apply(Chain().if_null("foo"), None) == Ok("foo")
        assert await apply(Chain().if_null("foo"), "bar") == Ok("bar")


class TestMembership:
    @pytest.mark.asyncio
    async def test_enumerated(self) -> None:
        chain = Chain().enumerated({"inactive": 0, "active": 1, "full_no_new_checks": 2})

        assert await apply(chain, "full_no_new_checks") == Ok(2)
        assert await apply(chain, "bogus_key") == Err(
            "Invalid value 'bogus_key'. Should be one of (inactive, active, full_no_new_checks)."
        )
        assert (await apply(chain, 0)).error.startswith("Invalid value '0'")

    @pytest.mark.asyncio
    async def test_in_array(self) -> None:
        assert await apply(Chain().in_array([1, 2, 3]), 1) == Ok(1)
        assert (await apply(Chain().in_array([1, 2, 3]), -1)).error.startswith("Invalid value '-1'. Should be one of")

    @pytest.mark.asyncio
    async def test_not_in(self) -> None:
        chain = Chain().not_in(["foo", "bar"])

        assert await apply(chain, "ponies") == Ok("ponies")
        assert await apply(chain, ["ponies"]) == Ok(["ponies"])
        assert await apply(chain, {"key": "ponies"}) == Ok({"key": "ponies"})
        assert await apply(chain, "bar") == Err("Value bar is blacklisted")
        assert await apply(chain, ["ponies", "foo"]) == Err("Value foo is blacklisted")
        assert await apply(chain, {"ponies": 1, "foo": "bar"}) == Err("Value foo is blacklisted")
        assert await apply(Chain().not_in(["foo"], case_sensitive=False), "FOO") == Err("Value foo is blacklisted")

    @pytest.mark.asyncio
    async def test_is_unique(self) -> None:
        assert await apply(Chain().is_unique(), [1, 2, 3]) == Ok([1, 2, 3])
        assert await apply(Chain().is_unique(), [1, 2, 1]) == Err("item 1 is repeated more than once")
        assert await apply(Chain().is_unique(), "abc") == Err("value must be an array")

    @pytest.mark.asyncio
    async def test_to_unique(self) -> None:
        assert await apply(Chain().to_unique(), [1, 2, 1, 3, 2]) == Ok([1, 2, 3])


class TestNumbers:
    @pytest.mark.asyncio
    async def test_range(self) -> None:
        assert await apply(Chain().range(1, 65535), 500) == Ok(500)
        assert await apply(Chain().range(1, 65535), 65536) == Err("Value out of range (1..65535)")
        assert await apply(Chain().range(1, 65535), "abc") == Err("Value out of range (1..65535)")

    @pytest.mark.asyncio
    async def test_textual_range(self) -> None:
        assert await apply(Chain().range("a", "c"), "b") == Ok("b")
        assert await apply(Chain().range("a", "c"), "d") == Err("Value out of range (a..c)")

    @pytest.mark.asyncio
    async def test_is_boolean(self) -> None:
        assert await apply(Chain().is_boolean(), 1) == Ok(True)
        assert await apply(Chain().is_boolean(), "FALSE") == Ok(False)
        assert await apply(Chain().is_boolean(), "notFalse") == Err("Not a boolean")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value,expected", [(1, 1), ("65535", 65535)])
    async def test_is_port(self, value, expected) -> None:
        assert await apply(Chain().is_port(), value) == Ok(expected)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [-1, 0, 65536, "abc"])
    async def test_is_port_rejects(self, value) -> None:
        assert await apply(Chain().is_port(), value) == Err("Value out of range [1,65535]")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value,message", [
        ("4b299c10-ab5a-11e1-9f6f-1c8b12469d15", None),
        ("b299c10-ab5a-11e1-9f6f-1c8b12469d15", "Invalid UUID"),
        ("4@299c10-ab5a-11e1-9f6f-1c8b12469d15", "Invalid UUID"),
        ("4b299c10-ab5a-11e1-4f6f-1c8b12469d15", "Unsupported UUID variant"),
        ("4b299c10-ab5a-21e1-9f6f-1c8b12469d15", "UUID is not version 1"),
    ])
    async def test_is_v1_uuid(self, value, message) -> None:
        assert await apply(Chain().is_v1_uuid(), value) == (Err(message) if message else Ok(value))


class TestContainers:
    """is_array, is_hash and num_items."""

    @pytest.mark.asyncio
    async def test_array(self) -> None:
        chain = Chain().is_array(Chain().is_string())

        assert await apply(chain, ["test"]) == Ok(["test"])
        assert await apply(chain, "abc") == Err("Not an array")
        assert await apply(chain, [1, 2]) == Err("Not a string")

    @pytest.mark.asyncio
    async def test_array_reports_lowest_index(self) -> None:
        chain = Chain().is_array(Chain().is_int())

        assert await apply(chain, [1, "a", 2, "b"]) == Err("Invalid integer")

    @pytest.mark.asyncio
    async def test_hash(self) -> None:
        chain = Chain().is_hash(Chain().is_string(), Chain().is_string())

        assert await apply(chain, {"test": "test"}) == Ok({"test": "test"})
        assert await apply(chain, {"test": 123}) == Err("Value for key 'test': Not a string")
        assert await apply(chain, {"test": "x", 5: "y"}) == Err("Key 5: Not a string")
        assert await apply(chain, ["a"]) == Err("Not a hash")

    @pytest.mark.asyncio
    async def test_num_items_array(self) -> None:
        bounded = Chain().is_array(Chain().is_int()).num_items(1, 5)
        open_ended = Chain().is_array(Chain().is_int()).num_items(2)

        assert isinstance(await apply(bounded, [1]), Ok)
        assert isinstance(await apply(bounded, [1, 2, 3, 4, 5]), Ok)
        assert await apply(bounded, []) == Err("Object needs to have between 1 and 5 items")
        assert await apply(bounded, [1, 2, 3, 4, 5, 6]) == Err("Object needs to have between 1 and 5 items")
        assert isinstance(await apply(open_ended, [1, 2]), Ok)
        assert await apply(open_ended, [1]) == Err("Object needs to have between 2 and Infinity items")

    @pytest.mark.asyncio
    async def test_num_items_hash(self) -> None:
        chain = Chain().is_hash(Chain().is_string(), Chain().not_empty()).num_items(1, 5)

        assert isinstance(await apply(chain, {"a": 1}), Ok)
        assert await apply(chain, {}) == Err("Object needs to have between 1 and 5 items")

    @pytest.mark.asyncio
    async def test_nested_array_of_hashes(self) -> None:
        chain = Chain().is_array(Chain().is_hash(Chain().is_string(), Chain().not_empty()))

        assert isinstance(await apply(chain, [{"name": "host"}, {"name": "port"}]), Ok)
        assert await apply(chain, [{"name": "host"}, {"name": " "}]) == Err("Value for key 'name': String is empty")


class TestCustom:
    """Validators registered by name."""

    @pytest.mark.asyncio
    async def test_custom_with_baton(self, validators) -> None:
        def meaning_of_life(value, baton):
            assert baton == "aBaton"
            return Ok("forty-two") if value == 42 else Err("incorrect value")

        validators.add("is_meaning_of_life", "Is the meaning of life", meaning_of_life)
        chain = Chain(validators).custom("is_meaning_of_life")

        assert chain.help() == ["Is the meaning of life"]
        assert await apply(chain, 42, "aBaton") == Ok("forty-two")
        assert await apply(chain, 43, "aBaton") == Err("incorrect value")

    @pytest.mark.asyncio
    async def test_async_custom_inside_array(self, validators) -> None:
        async def meaning_of_life(value, baton):
            return Ok("forty-two") if value == 42 else Err("incorrect value")

        validators.add("is_meaning_of_life", None, meaning_of_life)
        chain = Chain().optional().is_array(Chain(validators).custom("is_meaning_of_life"))

        assert await apply(chain, [42], "aBaton") == Ok(["forty-two"])
        assert await apply(chain, [43], "aBaton") == Err("incorrect value")

    def test_unknown_name(self, validators) -> None:
        with pytest.raises(ConfigurationError, match="Unknown validator name") as exc_info:
            Chain(validators).custom("bogus")

        assert exc_info.value.code == ErrorCode.E1002_UNKNOWN_VALIDATOR

    def test_missing_name(self, validators) -> None:
        with pytest.raises(ConfigurationError, match="Missing") as exc_info:
            Chain(validators).custom()

        assert exc_info.value.code == ErrorCode.E1003_MISSING_VALIDATOR_NAME

    def test_default_description(self, validators) -> None:
        validators.add("anything", None, lambda value, baton: Ok(value))

        assert Chain(validators).custom("anything").help() == ["(help not found)"]

    def test_frozen_registry(self, validators) -> None:
        validators.freeze()

        with pytest.raises(ConfigurationError) as exc_info:
            validators.add("late", None, lambda value, baton: Ok(value))

        assert exc_info.value.code == ErrorCode.E1008_REGISTRY_FROZEN
        assert "late" not in validators

    def test_function_required(self, validators) -> None:
        with pytest.raises(ConfigurationError, match="No validator function specified"):
            validators.add("nothing", None, None)
