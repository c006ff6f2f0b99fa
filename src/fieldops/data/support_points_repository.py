"""Support point loader with database-first approach, falling back to an Excel file."""

from __future__ import annotations

import logging
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from openpyxl import load_workbook

from ..config import settings
from ..db.supabase import get_supabase_client
from ..models.domain import Address, SupportPoint
from ..persistence.database import SUPPORT_POINTS_TABLE, support_point_from_row

REQUIRED_COLUMNS = {"Name", "Street", "Neighborhood", "City", "State"}


def _slugify(name: str) -> str:
    return "-".join(name.strip().lower().split())


def _cell(row: tuple, header_map: dict[str, int], column: str) -> Optional[str]:
    index = header_map.get(column)
    if index is None or index >= len(row):
        return None
    value = row[index]
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _load_support_points_from_database() -> tuple[SupportPoint, ...] | None:
    """Load support points from Supabase. Returns None if database not available or empty."""
    supabase = get_supabase_client()
    if not supabase:
        return None

    try:
        response = supabase.table(SUPPORT_POINTS_TABLE).select("*").execute()
    except Exception as e:
        logging.debug(f"Database query failed, falling back to file: {e}")
        return None
    if not response.data:
        return None

    points: list[SupportPoint] = []
    for row in response.data:
        try:
            points.append(support_point_from_row(row))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping invalid support point row: {e}")
    return tuple(points) if points else None


def _load_support_points_from_file(source: Path | None = None) -> tuple[SupportPoint, ...]:
    """Load support points from the Excel workbook."""
    workbook_path = source or settings.support_points_file
    if not workbook_path.exists():
        raise FileNotFoundError(f"Support points workbook not found: {workbook_path}")

    wb = load_workbook(workbook_path, data_only=True, read_only=True)
    try:
        sheet = wb.active
        rows = sheet.iter_rows(min_row=1, values_only=True)
        header = next(rows, None)
        if header is None:
            raise ValueError(f"Support points workbook '{workbook_path}' is empty.")

        header_map = {str(name).strip(): idx for idx, name in enumerate(header) if name is not None}
        missing_columns = REQUIRED_COLUMNS - set(header_map)
        if missing_columns:
            raise ValueError(f"Support points workbook missing columns: {', '.join(sorted(missing_columns))}")

        points: list[SupportPoint] = []
        for row in rows:
            name = _cell(row, header_map, "Name")
            street = _cell(row, header_map, "Street")
            if not name or not street:
                continue
            points.append(
                SupportPoint(
                    id=_cell(row, header_map, "Id") or _slugify(name),
                    name=name,
                    address=Address(
                        street=street,
                        number=_cell(row, header_map, "Number"),
                        complement=_cell(row, header_map, "Complement"),
                        neighborhood=_cell(row, header_map, "Neighborhood") or "",
                        city=_cell(row, header_map, "City") or "",
                        state=_cell(row, header_map, "State") or "",
                    ),
                )
            )
    finally:
        wb.close()
    return tuple(points)


def _sync_support_points_to_database(points: tuple[SupportPoint, ...]) -> None:
    """Insert support points that are not in the database yet."""
    supabase = get_supabase_client()
    if not supabase:
        return

    try:
        existing_response = supabase.table(SUPPORT_POINTS_TABLE).select("id").execute()
        existing_ids = {str(row["id"]) for row in existing_response.data} if existing_response.data else set()
        new_points = [
            {"id": point.id, "name": point.name, "address": asdict(point.address)}
            for point in points
            if point.id not in existing_ids
        ]
        if new_points:
            supabase.table(SUPPORT_POINTS_TABLE).insert(new_points).execute()
    except Exception as e:
        # The workbook stays the source of truth until a sync succeeds.
        logging.debug(f"Failed to sync support points to database (non-critical): {e}")


def get_support_points(source: Path | None = None) -> tuple[SupportPoint, ...]:
    """Get support points from database first, fall back to the Excel workbook.

    If the database is empty or not configured, points loaded from the
    workbook are synced to the database.
    """
    db_points = _load_support_points_from_database()
    if db_points:
        return db_points

    file_points = _load_support_points_from_file(source)
    if file_points:
        _sync_support_points_to_database(file_points)
    return file_points


def resolve_support_point(support_point_id: str, source: Path | None = None) -> SupportPoint | None:
    for point in get_support_points(source):
        if point.id == support_point_id:
            return point
    return None
