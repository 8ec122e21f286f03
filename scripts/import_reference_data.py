"""Import destination rates and ZIP geocodes from CSV files."""

from __future__ import annotations

import sys
from pathlib import Path

# Allow running this script directly by ensuring project root is on ``sys.path``
sys.path.append(str(Path(__file__).resolve().parents[1]))

from argparse import ArgumentParser
from typing import Dict, Iterable, List, Tuple, Type, TypeVar

import logging
import pandas as pd
from sqlalchemy.orm import Session as SASession

from portal import create_app
from portal.models import db, Destination, PostalGeo


logger = logging.getLogger(__name__)

T = TypeVar("T")

DESTINATION_COLUMNS: Dict[str, str] = {
    "COUNTRY": "country_name",
    "CITY": "city_name",
    "AIRPORT CODE": "airport_code",
    "RATE 1-50": "rate_tier1",
    "RATE 51-100": "rate_tier2",
    "RATE 101-200": "rate_tier3",
    "RATE 201+": "rate_tier4",
    "EXPRESS SURCHARGE %": "express_surcharge_pct",
    "TRANSIT MIN": "transit_days_min",
    "TRANSIT MAX": "transit_days_max",
}

POSTAL_GEO_COLUMNS: Dict[str, str] = {
    "ZIP CODE": "zip_code",
    "CITY": "city",
    "STATE": "state",
    "LATITUDE": "latitude",
    "LONGITUDE": "longitude",
}


def _normalise_headers(df: pd.DataFrame, rename_map: Dict[str, str]) -> pd.DataFrame:
    """Return ``df`` with upper-cased headers renamed per ``rename_map``.

    Raises:
        ValueError: When any expected column is missing.
    """

    df = df.copy()
    df.columns = df.columns.astype(str).str.strip().str.upper()
    missing = set(rename_map).difference(df.columns)
    if missing:
        raise ValueError(
            "Missing expected columns: "
            + ", ".join(sorted(missing))
            + ". Check for missing or transposed headers."
        )
    return df.rename(columns=rename_map)[list(rename_map.values())]


def _to_money(series: pd.Series) -> pd.Series:
    """Convert values such as ``"$4.50"`` or ``"1,200"`` to floats."""

    cleaned = series.astype(str).str.replace(r"[$,%\s]", "", regex=True)
    return pd.to_numeric(cleaned, errors="coerce")


def load_destinations(df: pd.DataFrame) -> List[Destination]:
    """Normalize a destination rate sheet into ``Destination`` objects.

    Currency symbols and thousands separators are stripped from rate
    columns. Rows without an airport code are dropped and airport codes are
    upper-cased. Missing tier rates stay ``None`` so pricing can fall back to
    the next lower tier.

    Args:
        df: Source data with one row per destination.

    Returns:
        A list of ``portal.models.Destination`` instances ready for insertion.
    """

    normalized = _normalise_headers(df, DESTINATION_COLUMNS)
    normalized = normalized.dropna(subset=["airport_code"])
    normalized["airport_code"] = normalized["airport_code"].astype(str).str.strip().str.upper()
    normalized = normalized[normalized["airport_code"] != ""].copy()
    for column in ("country_name", "city_name"):
        normalized[column] = normalized[column].astype(str).str.strip()
    for column in ("rate_tier1", "rate_tier2", "rate_tier3", "rate_tier4", "express_surcharge_pct"):
        normalized[column] = _to_money(normalized[column])
    normalized["express_surcharge_pct"] = normalized["express_surcharge_pct"].fillna(0.0)
    for column in ("transit_days_min", "transit_days_max"):
        normalized[column] = pd.to_numeric(normalized[column], errors="coerce")
    normalized = normalized.dropna(subset=["transit_days_min", "transit_days_max"])
    normalized = normalized.drop_duplicates(subset="airport_code")

    records = normalized.astype(object).where(pd.notna(normalized), None)
    destinations = []
    for row in records.to_dict(orient="records"):
        row["transit_days_min"] = int(row["transit_days_min"])
        row["transit_days_max"] = int(row["transit_days_max"])
        destinations.append(Destination(is_active=True, **row))
    return destinations


def load_postal_geos(df: pd.DataFrame) -> List[PostalGeo]:
    """Normalize a ZIP geocode table into ``PostalGeo`` objects.

    Numeric ZIPs (``7030.0``) are zero-padded back to five digits and rows
    missing a ZIP or coordinates are skipped.

    Args:
        df: Source data with ZIP, city, state and coordinate columns.

    Returns:
        A list of ``portal.models.PostalGeo`` instances ready for insertion.
    """

    normalized = _normalise_headers(df, POSTAL_GEO_COLUMNS)
    normalized["zip_code"] = pd.to_numeric(normalized["zip_code"], errors="coerce")
    normalized["latitude"] = pd.to_numeric(normalized["latitude"], errors="coerce")
    normalized["longitude"] = pd.to_numeric(normalized["longitude"], errors="coerce")
    normalized = normalized.dropna(subset=["zip_code", "latitude", "longitude"])
    normalized["zip_code"] = normalized["zip_code"].astype(int).astype(str).str.zfill(5)
    normalized["city"] = normalized["city"].astype(str).str.strip()
    normalized["state"] = normalized["state"].astype(str).str.strip().str.upper()
    normalized = normalized.drop_duplicates(subset="zip_code")
    return [PostalGeo(**row) for row in normalized.to_dict(orient="records")]


def save_unique(
    session: SASession, model: Type[T], objects: Iterable[T], unique_attr: str
) -> Tuple[int, int]:
    """Persist only new records for a given model.

    Existing keys are loaded up front so each row is checked against an
    in-memory set instead of a per-row ``SELECT``.

    Args:
        session: Active :class:`sqlalchemy.orm.Session` used for database I/O.
        model: SQLAlchemy model class to query for existing rows.
        objects: Iterable of model instances to insert.
        unique_attr: Model attribute that uniquely identifies a row.

    Returns:
        A tuple of ``(inserted, skipped)`` counts.
    """

    existing_keys = {key for (key,) in session.query(getattr(model, unique_attr)).all()}
    to_insert: List[T] = []
    skipped = 0
    for obj in objects:
        key = getattr(obj, unique_attr)
        if key in existing_keys:
            logger.info("Skipped existing %s: %s", model.__name__, key)
            skipped += 1
            continue
        logger.info("Inserted %s: %s", model.__name__, key)
        existing_keys.add(key)
        to_insert.append(obj)
    if to_insert:
        session.add_all(to_insert)
    return len(to_insert), skipped


def import_csvs(directory: Path) -> Dict[str, Tuple[int, int]]:
    """Load ``destinations.csv`` and ``postal_geos.csv`` from ``directory``.

    Missing files are skipped. Requires an active Flask application context
    so :data:`portal.models.db.session` is available.

    Args:
        directory: Folder containing the CSV files.

    Returns:
        Mapping of table name to ``(inserted, skipped)`` counts.
    """

    session = db.session
    results: Dict[str, Tuple[int, int]] = {}
    try:
        destination_file = directory / "destinations.csv"
        if destination_file.exists():
            results["destinations"] = save_unique(
                session,
                Destination,
                load_destinations(pd.read_csv(destination_file)),
                "airport_code",
            )

        geo_file = directory / "postal_geos.csv"
        if geo_file.exists():
            results["postal_geos"] = save_unique(
                session,
                PostalGeo,
                load_postal_geos(pd.read_csv(geo_file)),
                "zip_code",
            )

        session.commit()
    except Exception:
        session.rollback()
        raise
    return results


if __name__ == "__main__":
    parser = ArgumentParser(description="Import destination rates and ZIP geocodes")
    parser.add_argument(
        "directory", type=Path, help="Directory containing the reference CSV files"
    )
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        db.create_all()
        summary = import_csvs(args.directory)

    for table, (inserted, skipped) in summary.items():
        print(f"Inserted {inserted} {table} rows (skipped {skipped}).")
