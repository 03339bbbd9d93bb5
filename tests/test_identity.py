from __future__ import annotations

import pytest

from app.core.identity import (
    IDENTITY_ERROR_MESSAGE,
    cedula_check_digit,
    provincia_de_cedula,
    validate_ci_pasaporte,
)


@pytest.mark.parametrize("cedula", ["0402084040", "1710034065"])
def test_valid_cedulas_are_accepted(cedula):
    result = validate_ci_pasaporte(cedula)
    assert result.valid
    assert result.normalized == cedula


def test_cedula_with_wrong_check_digit_is_rejected():
    assert cedula_check_digit("123456789") == 7
    assert not validate_ci_pasaporte("1234567890").valid
    assert not validate_ci_pasaporte("0402084041").valid


@pytest.mark.parametrize(
    "value",
    [
        "2510034065",  # provincia inexistente
        "0010034065",
        "1760034065",  # tercer digito >= 6
        "2222222222",  # digitos identicos, aunque cuadre el checksum
        "040208404",
        "04020840400",
    ],
)
def test_cedula_structure_rules(value):
    assert not validate_ci_pasaporte(value).valid


def test_identical_digits_would_pass_checksum():
    assert cedula_check_digit("222222222") == 2


def test_input_is_trimmed():
    assert validate_ci_pasaporte("  0402084040 ").normalized == "0402084040"
    assert validate_ci_pasaporte(" AB123456\t").normalized == "AB123456"


@pytest.mark.parametrize("value", ["AB123456", "A12345", "X1Y2Z3W4Q"])
def test_valid_passports(value):
    assert validate_ci_pasaporte(value).valid


@pytest.mark.parametrize(
    "value",
    ["ab123456", "AB12345678", "ABC12", "AB-12345", "123456", "123456789", ""],
)
def test_invalid_passports(value):
    assert not validate_ci_pasaporte(value).valid


@pytest.mark.parametrize("value", [None, 402084040, b"0402084040", ["0402084040"]])
def test_non_string_input_is_invalid_without_raising(value):
    result = validate_ci_pasaporte(value)
    assert not result.valid
    assert result.normalized is None


def test_numeric_strings_are_never_read_as_passports():
    # 9 digitos cumplen la longitud de pasaporte pero no se aceptan
    assert not validate_ci_pasaporte("123456789").valid


def test_error_message_names_both_formats():
    assert "cedula" in IDENTITY_ERROR_MESSAGE
    assert "pasaporte" in IDENTITY_ERROR_MESSAGE


def test_provincia_de_cedula():
    assert provincia_de_cedula("1710034065") == (17, "Pichincha")
    assert provincia_de_cedula("0402084040") == (4, "Carchi")
    assert provincia_de_cedula("1234567890") is None
    assert provincia_de_cedula("AB123456") is None
