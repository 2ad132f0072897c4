"""Tests for rune etching payloads."""

import dataclasses

import pytest
from mcp_ordinals.errors import MalformedVarint, UnrecognizedEnvelope, ValidationError
from mcp_ordinals.names import encode_rune_name
from mcp_ordinals.payload import TaggedField
from mcp_ordinals.primitives import OP_RETURN, decode_op_return_script
from mcp_ordinals.protocols.runes import (
    RUNES_MAGIC,
    RUNES_PROTOCOL_ID,
    SIGNATURE,
    EtchingRequest,
    Tag,
    decode_etching_payload,
    decode_etching_script,
    encode_etching,
    normalize_etching_request,
)
from mcp_ordinals.varint import encode_varint


class TestEtchingEncoding:
    """Test OP_RETURN etching script assembly."""

    def test_minimal_etching(self):
        """A name-only etching carries just the RUNE field."""
        encoded = encode_etching({"name": "TESTRUNES", "divisibility": 0})

        assert encoded.script[0] == OP_RETURN
        assert encoded.script[1] == len(encoded.payload)  # Direct push
        assert encoded.payload[:2] == RUNES_MAGIC
        assert encoded.payload[2] == RUNES_PROTOCOL_ID

        fields = encoded.payload[3:]
        assert fields[0] == Tag.RUNE
        assert fields[1:] == encode_varint(encode_rune_name("TESTRUNES"))
        assert encoded.fields == fields

    def test_script_hex_starts_with_op_return_and_magic(self):
        encoded = encode_etching(EtchingRequest(name="TESTRUNES"))

        assert encoded.script_hex.startswith("6a")
        assert encoded.script_hex[4:10] == "525300"
        assert encoded.length == len(encoded.script)

    def test_payload_is_op_return_push(self):
        encoded = encode_etching(EtchingRequest(name="GAUS", premine=1000))

        assert decode_op_return_script(encoded.script) == encoded.payload

    def test_canonical_field_order(self):
        """Fields come out in canonical order whatever the input order."""
        encoded = encode_etching({
            "height_end": 850000,
            "height_start": 840000,
            "amount": "1000",
            "cap": "10000",
            "premine": "1000000",
            "symbol": "⚡",
            "divisibility": 2,
            "name": "GAUS",
        })

        assert decode_etching_payload(encoded.payload) == [
            TaggedField(Tag.RUNE, encode_rune_name("GAUS")),
            TaggedField(Tag.DIVISIBILITY, 2),
            TaggedField(Tag.SYMBOL, ord("⚡")),
            TaggedField(Tag.PREMINE, 1000000),
            TaggedField(Tag.CAP, 10000),
            TaggedField(Tag.AMOUNT, 1000),
            TaggedField(Tag.HEIGHT_START, 840000),
            TaggedField(Tag.HEIGHT_END, 850000),
        ]

    def test_offsets_and_pointer(self):
        encoded = encode_etching(EtchingRequest(
            name="A", offset_start=1, offset_end=100, pointer=2,
        ))

        tags = [f.tag for f in decode_etching_payload(encoded.payload)]
        assert tags == [Tag.RUNE, Tag.OFFSET_START, Tag.OFFSET_END, Tag.POINTER]

    def test_zero_fields_omitted(self):
        encoded = encode_etching(EtchingRequest(name="A", divisibility=0, premine=0))

        assert encoded.fields == bytes([Tag.RUNE, 0])

    @pytest.mark.parametrize("cap,amount,expected", [
        (5, 0, [Tag.CAP]),
        (0, 5, [Tag.AMOUNT]),
        (5, 7, [Tag.CAP, Tag.AMOUNT]),
        (0, 0, []),
    ])
    def test_mint_terms(self, cap, amount, expected):
        """Cap precedes amount; each is only emitted when non-zero."""
        encoded = encode_etching(EtchingRequest(name="A", cap=cap, amount=amount))

        tags = [f.tag for f in decode_etching_payload(encoded.payload)][1:]
        assert tags == expected

    def test_big_premine(self):
        """Amounts beyond 64 bits are carried exactly."""
        premine = "340282366920938463463374607431768211455"
        encoded = encode_etching({"name": "BIG", "premine": premine})

        fields = decode_etching_payload(encoded.payload)
        assert fields[1] == TaggedField(Tag.PREMINE, 2**128 - 1)

    def test_request_echo_and_details(self):
        encoded = encode_etching({"name": "GAUS", "premine": "1000", "cap": 3})

        assert encoded.request == EtchingRequest(name="GAUS", premine=1000, cap=3)
        details = encoded.details()
        assert details["premine"] == "1000"
        assert details["cap"] == "3"
        assert details["pointer"] == 0

    def test_encoded_payload_is_immutable(self):
        encoded = encode_etching(EtchingRequest(name="A"))

        with pytest.raises(dataclasses.FrozenInstanceError):
            encoded.script = b""

    def test_request_protocol_methods(self):
        request = EtchingRequest(name="GAUS", divisibility=2)

        assert request.to_script() == encode_etching(request).script
        assert request.to_bytes() == encode_etching(request).payload


class TestEtchingValidation:
    """Test that violations are reported together."""

    def test_empty_name(self):
        with pytest.raises(ValidationError) as exc_info:
            encode_etching({"name": ""})

        assert "Rune name is required" in exc_info.value.violations

    def test_divisibility_39(self):
        with pytest.raises(ValidationError) as exc_info:
            encode_etching({"name": "GAUS", "divisibility": 39})

        assert exc_info.value.violations == ["Divisibility must be 0-38"]

    def test_name_and_divisibility_together(self):
        with pytest.raises(ValidationError, match="Validation failed") as exc_info:
            encode_etching({"name": "", "divisibility": 39})

        assert exc_info.value.violations == [
            "Rune name is required",
            "Divisibility must be 0-38",
        ]

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            encode_etching(EtchingRequest(name="bad"))

    def test_from_input(self):
        request = EtchingRequest.from_input(name="GAUS", premine="1000", divisibility="2")

        assert request.premine == 1000
        assert request.divisibility == 2

    def test_from_input_reports_all(self):
        with pytest.raises(ValidationError) as exc_info:
            EtchingRequest.from_input(name="", premine="lots")

        assert exc_info.value.violations == [
            "premine must be an integer, got 'lots'",
            "Rune name is required",
        ]


class TestNormalization:
    """Test the input coercion step."""

    @pytest.mark.parametrize("raw,expected", [
        (1000, 1000),
        ("1000", 1000),
        (" 42 ", 42),
        (7.0, 7),
        (None, 0),
        ("-5", -5),
    ])
    def test_accepted_numbers(self, raw, expected):
        request, errors = normalize_etching_request({"name": "A", "premine": raw})

        assert errors == []
        assert request.premine == expected

    @pytest.mark.parametrize("raw", ["abc", "", "1.5", 1.5, float("nan"), float("inf"), True, [1]])
    def test_rejected_numbers(self, raw):
        """Unparsable input is reported, never replaced with zero silently."""
        _, errors = normalize_etching_request({"name": "A", "cap": raw})

        assert len(errors) == 1
        assert errors[0].startswith("cap must be an integer")

    def test_negative_string_reaches_validation(self):
        with pytest.raises(ValidationError) as exc_info:
            encode_etching({"name": "A", "premine": "-5"})

        assert exc_info.value.violations == ["premine cannot be negative"]

    def test_unknown_field(self):
        _, errors = normalize_etching_request({"name": "A", "runeName": "A"})

        assert errors == ["Unknown field: runeName"]

    def test_non_string_name(self):
        _, errors = normalize_etching_request({"name": 5})

        assert errors == ["name must be a string, got int"]

    def test_request_fields_are_normalized(self):
        """Loose values held by an EtchingRequest are converted like mapping input."""
        encoded = encode_etching(EtchingRequest(name="GAUS", premine="1000", cap=3.0))

        assert encoded.request == EtchingRequest(name="GAUS", premine=1000, cap=3)
        assert encoded.script == encode_etching({"name": "GAUS", "premine": 1000, "cap": 3}).script

    def test_unconvertible_request_field(self):
        with pytest.raises(ValidationError) as exc_info:
            encode_etching(EtchingRequest(name="GAUS", premine="lots"))

        assert exc_info.value.violations == ["premine must be an integer, got 'lots'"]

    def test_conversion_and_validation_errors_combined(self):
        with pytest.raises(ValidationError) as exc_info:
            encode_etching({"name": "", "divisibility": 39, "amount": "many"})

        assert exc_info.value.violations == [
            "amount must be an integer, got 'many'",
            "Rune name is required",
            "Divisibility must be 0-38",
        ]


class TestEtchingDecoding:
    """Test reading fields back out of a payload."""

    def test_decode_script(self):
        encoded = encode_etching(EtchingRequest(name="GAUS", divisibility=2))

        assert decode_etching_script(encoded.script) == [
            TaggedField(Tag.RUNE, encode_rune_name("GAUS")),
            TaggedField(Tag.DIVISIBILITY, 2),
        ]

    def test_signature_checked_first(self):
        with pytest.raises(UnrecognizedEnvelope, match="Invalid rune signature"):
            decode_etching_payload(b"XX\x00\x04\x01")

    def test_tag_without_value(self):
        with pytest.raises(MalformedVarint, match="has no value"):
            decode_etching_payload(SIGNATURE + b"\x04")

    def test_truncated_value(self):
        with pytest.raises(MalformedVarint):
            decode_etching_payload(SIGNATURE + b"\x04\x80")

    def test_empty_fields(self):
        assert decode_etching_payload(SIGNATURE) == []

    def test_not_op_return(self):
        with pytest.raises(ValueError, match="not an OP_RETURN"):
            decode_etching_script(b"\x76\x03RS\x00")
