"""
Exceptions for Pharmstock.

All errors are StockError with a structured code for programmatic handling.
"""

from decimal import Decimal
from typing import Any


class BaseError(Exception):
    """
    Exception with a code, a message and free-form context data.

    Subclasses declare `_default_messages` so callers only need the code.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")


class StockError(BaseError):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            ledger.reduce_stock(10, product, 'pos_sale')
        except StockError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Só tem {e.available} disponível")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'INVALID_QUANTITY': 'Quantidade inválida (deve ser um inteiro positivo)',
        'INVALID_PRICE': 'Valor monetário inválido (deve ser decimal não negativo)',
        'INVALID_DATE': 'Data inválida',
        'INVALID_EXPIRY': 'Data de validade deve ser futura',
        'INVALID_REASON': 'Motivo de saída inválido',
        'INVALID_FIELD': 'Campo não pode ser alterado por esta operação',
        'IMMUTABLE_FIELD': 'Quantidades do lote só mudam por entrada ou saída de estoque',
        'INVALID_MOVEMENT': 'Movimento inválido',
        'RESTORE_EXCEEDS_RECEIVED': 'Devolução excede a quantidade recebida do lote',
        'DUPLICATE_BATCH_NUMBER': 'Número de lote já existe para este produto',
        'BATCH_NOT_FOUND': 'Lote não encontrado',
        'PRODUCT_NOT_FOUND': 'Produto não encontrado',
        'INSUFFICIENT_STOCK': 'Estoque disponível insuficiente',
        'CONCURRENT_MODIFICATION': 'Modificação concorrente detectada',
    }

    _retryable_codes = frozenset({'CONCURRENT_MODIFICATION'})

    _validation_codes = frozenset({
        'INVALID_QUANTITY',
        'INVALID_PRICE',
        'INVALID_DATE',
        'INVALID_EXPIRY',
        'INVALID_REASON',
        'INVALID_FIELD',
        'IMMUTABLE_FIELD',
        'INVALID_MOVEMENT',
        'RESTORE_EXCEEDS_RECEIVED',
        'DUPLICATE_BATCH_NUMBER',
        'BATCH_NOT_FOUND',
        'PRODUCT_NOT_FOUND',
    })

    @property
    def retryable(self) -> bool:
        """Can the caller try the same operation again?"""
        return self.code in self._retryable_codes

    @property
    def is_validation(self) -> bool:
        """Is this a problem with the input (never retried)?"""
        return self.code in self._validation_codes

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }
