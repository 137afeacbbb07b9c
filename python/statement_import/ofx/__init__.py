"""OFX/QFX statement reading."""

from .document import OFXDocument, OFXParseFailure, is_ofx_format, parse_ofx_document
from .statements import (
    OFXAccount,
    OFXBalance,
    OFXDateRange,
    OFXStatement,
    OFXStatementBalance,
    OFXStatementData,
    OFXTransaction,
    extract_statements,
    parse_ofx,
    parse_ofx_date,
)

__all__ = [
    "OFXDocument",
    "OFXParseFailure",
    "is_ofx_format",
    "parse_ofx_document",
    "OFXAccount",
    "OFXBalance",
    "OFXDateRange",
    "OFXStatement",
    "OFXStatementBalance",
    "OFXStatementData",
    "OFXTransaction",
    "extract_statements",
    "parse_ofx",
    "parse_ofx_date",
]
