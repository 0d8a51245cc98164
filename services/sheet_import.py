"""
Service for decoding uploaded subscription spreadsheets into raw rows
"""
import io
import logging
from typing import Any, Dict, List

import pandas as pd

from services.errors import SheetImportError

logger = logging.getLogger(__name__)


class SheetImporter:
    """Read the first sheet of an uploaded Excel (or CSV) file"""

    @staticmethod
    def read_rows(content: bytes, filename: str = "") -> List[Dict[str, Any]]:
        """
        Decode an uploaded file into rows of original header -> cell value

        Args:
            content: Raw bytes of the uploaded file
            filename: Original file name, used to recognize CSV uploads

        Returns:
            List of row dictionaries; empty cells are None, fully empty rows are skipped

        Raises:
            SheetImportError: The file is empty or cannot be decoded as a spreadsheet
        """
        if not content:
            raise SheetImportError(detail="Uploaded file is empty")

        try:
            if filename.lower().endswith(".csv"):
                df = pd.read_csv(io.BytesIO(content), dtype=str)
            else:
                # Only the first sheet is read
                df = pd.read_excel(io.BytesIO(content), sheet_name=0)
        except Exception as e:
            logger.exception(f"Failed to decode spreadsheet '{filename}'")
            raise SheetImportError(detail=str(e)) from e

        df = df.dropna(how="all")
        df = df.astype(object).where(pd.notna(df), None)

        rows = df.to_dict(orient="records")
        logger.info(f"Decoded {len(rows)} rows from '{filename or 'upload'}' ({len(df.columns)} columns)")

        return rows
