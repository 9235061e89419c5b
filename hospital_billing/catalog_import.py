"""
Import a code catalog from a spreadsheet or CSV export.

Hospital finance teams maintain the price list in Excel/CSV; this module reads
such a table with pandas and turns it into Codes (and codes.json entries).
"""

import json
import logging
from pathlib import Path
from typing import List, Tuple

import pandas as pd

from .code_registry import Code, CodeType

logger = logging.getLogger(__name__)

# Accepted header spellings -> field name
COLUMN_MAPPING = {
    'code': 'code',
    'code id': 'code',
    'billing code': 'code',
    'description': 'description',
    'desc': 'description',
    'unit price': 'unit_price',
    'price': 'unit_price',
    'unit_price': 'unit_price',
    'code type': 'code_type',
    'code_type': 'code_type',
    'type': 'code_type',
    'category': 'category',
}

REQUIRED_COLUMNS = ['code', 'description', 'unit_price']


def read_catalog_table(filepath: Path) -> pd.DataFrame:
    """
    Read a catalog table, Excel or CSV, with normalised column names.

    Raises:
        ValueError: If a required column is missing
    """
    filepath = Path(filepath)
    if filepath.suffix in ['.xlsx', '.xls']:
        df = pd.read_excel(filepath, dtype=str)
    else:
        df = pd.read_csv(filepath, dtype=str)

    logger.info(f"Loaded {len(df)} rows from {filepath}")

    df.columns = df.columns.str.strip().str.lower()
    df = df.rename(columns={col: COLUMN_MAPPING[col] for col in df.columns if col in COLUMN_MAPPING})

    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise ValueError(f"Catalog is missing required columns: {', '.join(missing)}")
    return df


def codes_from_frame(df: pd.DataFrame) -> Tuple[List[Code], List[str]]:
    """
    Convert catalog rows into Codes.

    Rows with a blank code, an unparseable or negative price, an unknown code
    type, or a code already seen earlier in the table are skipped.

    Args:
        df: Table with at least code, description and unit_price columns

    Returns:
        Tuple of (codes, skipped row messages)
    """
    codes: List[Code] = []
    skipped: List[str] = []
    seen = set()

    for index, row in df.iterrows():
        raw_code = row.get('code')
        if raw_code is None or pd.isna(raw_code) or not str(raw_code).strip():
            skipped.append(f"row {index}: blank code")
            continue

        code_type = row.get('code_type')
        if code_type is None or pd.isna(code_type) or not str(code_type).strip():
            code_type = CodeType.SERVICE.value
        category = row.get('category')
        if category is None or pd.isna(category):
            category = ""
        description = row.get('description')
        if description is None or pd.isna(description):
            description = ""

        try:
            code = Code(
                code_id=str(raw_code),
                description=str(description).strip()[:200],
                unit_price=str(row.get('unit_price')).replace(',', '').strip(),
                code_type=str(code_type).strip().upper(),
                category=str(category),
            )
        except ValueError as e:
            skipped.append(f"row {index}: {e}")
            continue

        if code.code_id in seen:
            skipped.append(f"row {index}: duplicate code {code.code_id}")
            continue
        seen.add(code.code_id)
        codes.append(code)

    for message in skipped:
        logger.warning(f"Skipped catalog {message}")
    logger.info(f"Parsed {len(codes)} codes ({len(skipped)} rows skipped)")
    return codes, skipped


def write_codes_json(codes: List[Code], output: Path) -> None:
    """Write Codes to a codes.json file readable by CodeRegistry.from_directory."""
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, 'w') as f:
        json.dump([code.to_dict() for code in codes], f, indent=2)
    logger.info(f"Wrote {len(codes)} codes to {output}")
