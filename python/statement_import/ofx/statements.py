"""
OFX Statement Extractor

Walks a parsed OFX document and pulls out bank and credit card statements
with their account, currency, balances and transactions.
"""

import logging
import math
import random
import re
import string
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..currency import DEFAULT_CURRENCY, normalize_currency_code
from .document import OFXDocument, OFXParseFailure, parse_ofx_document

logger = logging.getLogger(__name__)

_OFX_DATE = re.compile(r"^(\d{4})(\d{2})(\d{2})")
_OFX_AMOUNT = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)$")
_ID_ALPHABET = string.ascii_lowercase + string.digits

# (message set, transaction wrapper, statement response, account aggregate)
STATEMENT_SHAPES = [
    ("BANKMSGSRSV1", "STMTTRNRS", "STMTRS", "BANKACCTFROM"),
    ("CREDITCARDMSGSRSV1", "CCSTMTTRNRS", "CCSTMTRS", "CCACCTFROM"),
]


@dataclass
class OFXAccount:
    account_id: str
    account_type: str
    bank_id: str | None = None


@dataclass
class OFXDateRange:
    start: date
    end: date


@dataclass
class OFXBalance:
    amount: float
    as_of_date: date | None = None


@dataclass
class OFXStatementBalance:
    ledger_balance: OFXBalance | None = None
    available_balance: OFXBalance | None = None


@dataclass
class OFXTransaction:
    """A single STMTTRN entry, amount in major units as written."""

    fit_id: str
    type: str
    date_posted: date
    amount: float
    name: str = ""
    memo: str = ""
    check_number: str | None = None
    reference_number: str | None = None


@dataclass
class OFXStatement:
    account: OFXAccount
    currency: str = DEFAULT_CURRENCY
    date_range: OFXDateRange | None = None
    balance: OFXStatementBalance = field(default_factory=OFXStatementBalance)
    transactions: list[OFXTransaction] = field(default_factory=list)


@dataclass
class OFXStatementData:
    """All statements found in one OFX file."""

    server_date: date | None = None
    statements: list[OFXStatement] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True

    @property
    def transaction_count(self) -> int:
        return sum(len(s.transactions) for s in self.statements)


def parse_ofx_date(value: str | None) -> date | None:
    """Parse an OFX datetime (YYYYMMDD[HHMMSS[.XXX]][[gmt:TZ]]).

    Only the first eight digits are used, so the result is the calendar
    date as written in the file regardless of time zone suffix.
    """
    if not value:
        return None
    match = _OFX_DATE.match(value.strip())
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None


def parse_ofx_amount(value: str | None) -> float | None:
    """Parse a TRNAMT/BALAMT value; some banks write a comma decimal."""
    if not value:
        return None
    text = value.strip()
    if "," in text and "." not in text:
        text = text.replace(",", ".")
    if not _OFX_AMOUNT.match(text):
        return None
    amount = float(text)
    return amount if math.isfinite(amount) else None


def generate_fit_id() -> str:
    """Synthesize an id for a transaction with no FITID."""
    suffix = "".join(random.choices(_ID_ALPHABET, k=7))
    return f"gen-{int(time.time() * 1000)}-{suffix}"


def _as_list(value: Any) -> list[dict]:
    """A container may be absent, a single aggregate or a list of them."""
    if value is None:
        return []
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    if isinstance(value, dict):
        return [value]
    return []


def _text(aggregate: dict | None, name: str) -> str | None:
    if not isinstance(aggregate, dict):
        return None
    value = aggregate.get(name)
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, str):
        return value.strip() or None
    return None


def _child(aggregate: dict | None, name: str) -> dict | None:
    items = _as_list(aggregate.get(name)) if isinstance(aggregate, dict) else []
    return items[0] if items else None


def _parse_balance(aggregate: dict | None) -> OFXBalance | None:
    amount = parse_ofx_amount(_text(aggregate, "BALAMT"))
    if amount is None:
        return None
    return OFXBalance(amount=amount, as_of_date=parse_ofx_date(_text(aggregate, "DTASOF")))


def _parse_transaction(element: dict, warnings: list[str]) -> OFXTransaction | None:
    fit_id = _text(element, "FITID")
    label = fit_id or "without FITID"

    date_posted = parse_ofx_date(_text(element, "DTPOSTED"))
    if date_posted is None:
        warnings.append(f"Skipped transaction {label}: missing or invalid DTPOSTED")
        return None

    amount = parse_ofx_amount(_text(element, "TRNAMT"))
    if amount is None:
        warnings.append(f"Skipped transaction {label}: missing or invalid TRNAMT")
        return None

    name = _text(element, "NAME") or _text(_child(element, "PAYEE"), "NAME") or ""

    return OFXTransaction(
        fit_id=fit_id or generate_fit_id(),
        type=_text(element, "TRNTYPE") or "OTHER",
        date_posted=date_posted,
        amount=amount,
        name=name,
        memo=_text(element, "MEMO") or "",
        check_number=_text(element, "CHECKNUM"),
        reference_number=_text(element, "REFNUM"),
    )


def _parse_transactions(elements: list[dict], warnings: list[str]) -> list[OFXTransaction]:
    transactions = []
    for element in elements:
        transaction = _parse_transaction(element, warnings)
        if transaction:
            transactions.append(transaction)
    return transactions


def _parse_statement(
    stmtrs: dict,
    account_tag: str,
    warnings: list[str],
) -> OFXStatement:
    account_element = _child(stmtrs, account_tag)
    is_credit_card = account_tag == "CCACCTFROM"

    if account_element is None:
        warnings.append("Statement has no account information")
    account = OFXAccount(
        account_id=_text(account_element, "ACCTID") or _text(account_element, "ACCTKEY") or "",
        account_type="CREDITCARD" if is_credit_card else (_text(account_element, "ACCTTYPE") or "CHECKING"),
        bank_id=None if is_credit_card else _text(account_element, "BANKID"),
    )

    tran_list = _child(stmtrs, "BANKTRANLIST")
    date_range = None
    start = parse_ofx_date(_text(tran_list, "DTSTART"))
    end = parse_ofx_date(_text(tran_list, "DTEND"))
    if start and end:
        date_range = OFXDateRange(start=start, end=end)

    elements = _as_list(tran_list.get("STMTTRN")) if tran_list else []

    return OFXStatement(
        account=account,
        currency=normalize_currency_code(_text(stmtrs, "CURDEF")),
        date_range=date_range,
        balance=OFXStatementBalance(
            ledger_balance=_parse_balance(_child(stmtrs, "LEDGERBAL")),
            available_balance=_parse_balance(_child(stmtrs, "AVAILBAL")),
        ),
        transactions=_parse_transactions(elements, warnings),
    )


def extract_statements(document: OFXDocument) -> OFXStatementData | OFXParseFailure:
    """Extract every bank and credit card statement from a document.

    Args:
        document: Structurally parsed OFX

    Returns:
        OFXStatementData, or OFXParseFailure when no statement is found
    """
    data = OFXStatementData(
        server_date=parse_ofx_date(_text(document.get("SIGNONMSGSRSV1", "SONRS"), "DTSERVER"))
    )

    for msgset_tag, trnrs_tag, stmtrs_tag, account_tag in STATEMENT_SHAPES:
        for msgset in _as_list(document.root.get(msgset_tag)):
            responses = _as_list(msgset.get(stmtrs_tag))
            for trnrs in _as_list(msgset.get(trnrs_tag)):
                responses.extend(_as_list(trnrs.get(stmtrs_tag)))
            for stmtrs in responses:
                data.statements.append(_parse_statement(stmtrs, account_tag, data.warnings))

    if not data.statements:
        stray = [e for e in document.find_all("STMTTRN") if isinstance(e, dict)]
        if stray:
            currencies = [c for c in document.find_all("CURDEF") if isinstance(c, str)]
            data.warnings.append(
                "Transactions found outside a recognized statement; grouped into one statement"
            )
            data.statements.append(
                OFXStatement(
                    account=OFXAccount(account_id="", account_type="UNKNOWN"),
                    currency=normalize_currency_code(currencies[0] if currencies else None),
                    transactions=_parse_transactions(stray, data.warnings),
                )
            )

    if not data.statements:
        return OFXParseFailure(
            "No statements found in OFX file",
            ["Expected BANKMSGSRSV1 or CREDITCARDMSGSRSV1 statement responses"],
        )

    for warning in data.warnings:
        logger.warning(f"OFX: {warning}")
    logger.debug(
        f"Extracted {len(data.statements)} statements with {data.transaction_count} transactions"
    )
    return data


def parse_ofx(content: str) -> OFXStatementData | OFXParseFailure:
    """Parse OFX/QFX text into statements.

    Args:
        content: Raw file content

    Returns:
        OFXStatementData or OFXParseFailure
    """
    document = parse_ofx_document(content)
    if isinstance(document, OFXParseFailure):
        return document
    return extract_statements(document)
