"""Shared test fixtures for the document structuring test suite."""

from pathlib import Path

import pytest

INVOICE_TEXT = """ACME Trading Co., Ltd.
TAX INVOICE
Invoice No: IV-2024-0042
Date: 15/03/2024
Due Date: 15/04/2024
Bill To: Globex Corporation
Email: billing@acme.co.th
Tel: 02-123-4567
DESCRIPTION QTY UNIT PRICE AMOUNT
Widget A 2 150.00 300.00
Gadget B 1 200.00 200.00
SUBTOTAL 500.00
VAT 7% 35.00
GRAND TOTAL 535.00"""

PERCENT_INVOICE_TEXT = """INVOICE NO: INV-001
DATE: 01/02/2024
SUBTOTAL: 100.00
VAT: 7%
TOTAL: 107.00"""

MEMO_TEXT = """บันทึกข้อความ
ส่วนราชการ กองคลัง สำนักงานปลัด
ที่ กค 0401/123 วันที่ 5 มกราคม 2567
เรื่อง ขออนุมัติจัดซื้อวัสดุสำนักงาน
เรียน ผู้อำนวยการกองคลัง
อ้างถึง หนังสือที่ กค 0401/100
สิ่งที่ส่งมาด้วย
1. ใบเสนอราคา
2. รายละเอียดวัสดุ
ด้วยกองคลังมีความประสงค์จะจัดซื้อวัสดุสำนักงานเพื่อใช้ในราชการ
จึงเรียนมาเพื่อโปรดพิจารณาอนุมัติ
ขอแสดงความนับถือ
(นายสมชาย ใจดี)
นักวิชาการเงินและบัญชี"""

# Memo header keywords without any memo body keyword.
MEMO_HEADER_ONLY_TEXT = """บันทึกข้อความ
ส่วนราชการ กองคลัง
เรื่อง ขออนุมัติจัดซื้อวัสดุ"""

LETTER_TEXT = """15 March 2024
Dear Ms. Suda,
Subject: Service renewal
We are pleased to confirm the renewal of the service agreement
for another year starting next month.
Sincerely,
John Carter
Account Manager"""

RESUME_TEXT = """Somchai Jaidee
Senior Data Engineer
somchai@example.com
081-234-5678
SUMMARY
Data engineer with eight years of experience.
EXPERIENCE
Data Engineer at Globex
EDUCATION
B.Eng. Computer Engineering
SKILLS
Python, SQL, Spark"""


@pytest.fixture
def invoice_text() -> str:
    """An English tax invoice with a description-led item table."""
    return INVOICE_TEXT


@pytest.fixture
def percent_invoice_text() -> str:
    """An invoice whose tax is given as a percentage."""
    return PERCENT_INVOICE_TEXT


@pytest.fixture
def memo_text() -> str:
    """A Thai official memo with every template block."""
    return MEMO_TEXT


@pytest.fixture
def letter_text() -> str:
    """A short English business letter."""
    return LETTER_TEXT


@pytest.fixture
def resume_text() -> str:
    """A short English resume."""
    return RESUME_TEXT


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
