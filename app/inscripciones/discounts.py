from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from app.core.models import Descuento

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_final_amount(valor_curso, descuento: Descuento | None = None) -> Decimal:
    """Importe final a pagar por una inscripcion.

    Solo se resta ``valor_descuento``; ``porcentaje_descuento`` es
    informativo y ya debe estar reflejado en el valor absoluto.
    """
    price = _money(valor_curso)
    if descuento is None:
        return price
    final = price - _money(descuento.valor_descuento or ZERO)
    return max(ZERO, final)
