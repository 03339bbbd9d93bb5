from __future__ import annotations

import re
from dataclasses import dataclass

IDENTITY_ERROR_MESSAGE = (
    "Debe ingresar una cedula ecuatoriana valida (10 digitos) "
    "o un pasaporte valido (6-9 caracteres alfanumericos en mayusculas)"
)

_CEDULA_RE = re.compile(r"[0-9]{10}")
_PASAPORTE_RE = re.compile(r"[A-Z0-9]{6,9}")
_CHECKSUM_WEIGHTS = (2, 1, 2, 1, 2, 1, 2, 1, 2)

PROVINCIAS: dict[int, str] = {
    1: "Azuay",
    2: "Bolivar",
    3: "Canar",
    4: "Carchi",
    5: "Cotopaxi",
    6: "Chimborazo",
    7: "El Oro",
    8: "Esmeraldas",
    9: "Guayas",
    10: "Imbabura",
    11: "Loja",
    12: "Los Rios",
    13: "Manabi",
    14: "Morona Santiago",
    15: "Napo",
    16: "Pastaza",
    17: "Pichincha",
    18: "Tungurahua",
    19: "Zamora Chinchipe",
    20: "Galapagos",
    21: "Sucumbios",
    22: "Orellana",
    23: "Santo Domingo de los Tsachilas",
    24: "Santa Elena",
}


@dataclass(frozen=True)
class IdentityResult:
    valid: bool
    normalized: str | None = None


def cedula_check_digit(first_nine: str) -> int:
    total = 0
    for digit, weight in zip(first_nine, _CHECKSUM_WEIGHTS):
        product = int(digit) * weight
        if product > 9:
            product -= 9
        total += product
    return (10 - total % 10) % 10


def is_valid_cedula(value: str) -> bool:
    if not _CEDULA_RE.fullmatch(value):
        return False
    if len(set(value)) == 1:
        return False
    if int(value[:2]) not in PROVINCIAS:
        return False
    # Tercer digito: persona natural (0-5)
    if int(value[2]) >= 6:
        return False
    return cedula_check_digit(value[:9]) == int(value[9])


def is_valid_pasaporte(value: str) -> bool:
    return bool(_PASAPORTE_RE.fullmatch(value)) and not value.isdigit()


def validate_ci_pasaporte(raw: object) -> IdentityResult:
    """Valida una cedula ecuatoriana o un pasaporte.

    Una cadena de 10 digitos solo se acepta como cedula; las cadenas
    puramente numericas nunca se reinterpretan como pasaporte.
    """
    if not isinstance(raw, str):
        return IdentityResult(valid=False)
    value = raw.strip()
    if value.isascii() and value.isdigit():
        if is_valid_cedula(value):
            return IdentityResult(valid=True, normalized=value)
        return IdentityResult(valid=False)
    if is_valid_pasaporte(value):
        return IdentityResult(valid=True, normalized=value)
    return IdentityResult(valid=False)


def provincia_de_cedula(value: str) -> tuple[int, str] | None:
    if not isinstance(value, str) or not is_valid_cedula(value.strip()):
        return None
    codigo = int(value.strip()[:2])
    return codigo, PROVINCIAS[codigo]
