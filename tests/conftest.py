"""
Pytest configuration and fixtures for statement import tests.
"""

import sys
from datetime import date
from pathlib import Path

import pytest
import yaml

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

sys.path.insert(0, str(PROJECT_ROOT / "python"))

from statement_import.currency import Money
from statement_import.models import CandidateTransaction, ExistingTransaction


SGML_BANK_OFX = """OFXHEADER:100
DATA:OFXSGML
VERSION:102
SECURITY:NONE
ENCODING:USASCII
CHARSET:1252
COMPRESSION:NONE
OLDFILEUID:NONE
NEWFILEUID:NONE

<OFX>
<SIGNONMSGSRSV1>
<SONRS>
<STATUS>
<CODE>0
<SEVERITY>INFO
</STATUS>
<DTSERVER>20240131120000[-5:EST]
<LANGUAGE>ENG
</SONRS>
</SIGNONMSGSRSV1>
<BANKMSGSRSV1>
<STMTTRNRS>
<TRNUID>1001
<STATUS>
<CODE>0
<SEVERITY>INFO
</STATUS>
<STMTRS>
<CURDEF>USD
<BANKACCTFROM>
<BANKID>123456789
<ACCTID>987654321
<ACCTTYPE>CHECKING
</BANKACCTFROM>
<BANKTRANLIST>
<DTSTART>20240101
<DTEND>20240131
<STMTTRN>
<TRNTYPE>DEBIT
<DTPOSTED>20240115120000.000[-5:EST]
<TRNAMT>-75.50
<FITID>2024011501
<NAME>GROCERY STORE #1042
<MEMO>Card purchase
</STMTTRN>
<STMTTRN>
<TRNTYPE>CHECK
<DTPOSTED>20240116
<TRNAMT>-120.00
<FITID>2024011601
<CHECKNUM>1001
<NAME>Smith &amp; Sons
</STMTTRN>
<STMTTRN>
<TRNTYPE>CREDIT
<DTPOSTED>20240120
<TRNAMT>2500.00
<FITID>2024012001
<NAME>PAYROLL
<MEMO>Salary
</STMTTRN>
</BANKTRANLIST>
<LEDGERBAL>
<BALAMT>5234.56
<DTASOF>20240131
</LEDGERBAL>
<AVAILBAL>
<BALAMT>5000.00
<DTASOF>20240131
</AVAILBAL>
</STMTRS>
</STMTTRNRS>
</BANKMSGSRSV1>
</OFX>
"""

XML_CREDIT_CARD_OFX = """<?xml version="1.0" encoding="UTF-8" standalone="no"?>
<?OFX OFXHEADER="200" VERSION="220" SECURITY="NONE" OLDFILEUID="NONE" NEWFILEUID="NONE"?>
<OFX>
  <SIGNONMSGSRSV1>
    <SONRS>
      <STATUS><CODE>0</CODE><SEVERITY>INFO</SEVERITY></STATUS>
      <DTSERVER>20240301</DTSERVER>
      <LANGUAGE>ENG</LANGUAGE>
    </SONRS>
  </SIGNONMSGSRSV1>
  <CREDITCARDMSGSRSV1>
    <CCSTMTTRNRS>
      <TRNUID>1</TRNUID>
      <STATUS><CODE>0</CODE><SEVERITY>INFO</SEVERITY></STATUS>
      <CCSTMTRS>
        <CURDEF>EUR</CURDEF>
        <CCACCTFROM>
          <ACCTID>4111111111111111</ACCTID>
        </CCACCTFROM>
        <BANKTRANLIST>
          <DTSTART>20240201</DTSTART>
          <DTEND>20240229</DTEND>
          <STMTTRN>
            <TRNTYPE>DEBIT</TRNTYPE>
            <DTPOSTED>20240210</DTPOSTED>
            <TRNAMT>-42.10</TRNAMT>
            <FITID>CC001</FITID>
            <NAME>Cafe Central</NAME>
          </STMTTRN>
          <STMTTRN>
            <TRNTYPE>DEBIT</TRNTYPE>
            <DTPOSTED>20240212</DTPOSTED>
            <TRNAMT>-9.99</TRNAMT>
            <FITID>CC002</FITID>
            <PAYEE><NAME>Streaming Service</NAME></PAYEE>
            <MEMO></MEMO>
          </STMTTRN>
        </BANKTRANLIST>
        <LEDGERBAL>
          <BALAMT>-52.09</BALAMT>
          <DTASOF>20240229</DTASOF>
        </LEDGERBAL>
      </CCSTMTRS>
    </CCSTMTTRNRS>
  </CREDITCARDMSGSRSV1>
</OFX>
"""


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def config_dir() -> Path:
    """Return the config directory path."""
    return PROJECT_ROOT / "config"


@pytest.fixture
def import_settings(config_dir: Path) -> dict:
    """Load the import settings configuration."""
    with open(config_dir / "import_settings.yaml") as f:
        return yaml.safe_load(f)


@pytest.fixture
def sgml_bank_ofx() -> str:
    """OFX 1.x bank statement with three transactions."""
    return SGML_BANK_OFX


@pytest.fixture
def xml_credit_card_ofx() -> str:
    """OFX 2.x credit card statement with two transactions."""
    return XML_CREDIT_CARD_OFX


@pytest.fixture
def sample_csv_content() -> str:
    """Return sample bank CSV content."""
    return """Date,Description,Amount,Memo
2024-01-15,GROCERY STORE #1042,-75.50,Card purchase
2024-01-16,Coffee Shop,-4.25,
2024-01-20,PAYROLL,"2,500.00",Salary
"""


@pytest.fixture
def sample_mappings() -> dict[str, str]:
    """Column mappings for sample_csv_content."""
    return {
        "Date": "date",
        "Description": "merchant",
        "Amount": "amount",
        "Memo": "memo",
    }


@pytest.fixture
def existing_transactions() -> list[ExistingTransaction]:
    """Return transactions already stored in the account."""
    return [
        ExistingTransaction(
            id="existing-1",
            date=date(2024, 1, 15),
            amount=Money(-7550, "USD"),
            description="GROCERY STORE #1042",
        ),
        ExistingTransaction(
            id="existing-2",
            date=date(2024, 1, 10),
            amount=Money(-1999, "USD"),
            description="Internet Provider",
        ),
    ]


@pytest.fixture
def make_candidate():
    """Factory for candidate transactions."""

    def _make(
        id: str = "c1",
        on: date = date(2024, 1, 16),
        amount: int = -7550,
        description: str = "Grocery Store",
        currency: str = "USD",
        row: int = 0,
    ) -> CandidateTransaction:
        return CandidateTransaction(
            id=id,
            date=on,
            amount=Money(amount, currency),
            description=description,
            source_row_index=row,
        )

    return _make


@pytest.fixture
def make_existing():
    """Factory for existing transactions."""

    def _make(
        id: str = "e1",
        on: date = date(2024, 1, 15),
        amount: int = -7550,
        description: str = "GROCERY STORE #1042",
        currency: str = "USD",
    ) -> ExistingTransaction:
        return ExistingTransaction(
            id=id,
            date=on,
            amount=Money(amount, currency),
            description=description,
        )

    return _make
