"""
Match record storage and loading.

MatchRecordStore keeps the three record categories (head-to-head and each
side's games against other opponents), normalising every score to the
side A / side B perspective as it is ingested. DataLoader reads the same
records from CSV files with pandas.
"""
import logging
import math
import os
import warnings
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

import config
from models import (Category, DataWarning, InputError, MatchConfiguration,
                    MatchRecord, Side, Venue)

logger = logging.getLogger(__name__)

# ============================================================================
# SCORE PARSING & VALIDATION
# ============================================================================


def parse_scores(text: str) -> List[int]:
    """Parse a comma-separated score list such as "2, 1, 0".

    Raises:
        InputError: on empty input, non-numeric or negative entries
    """
    if text is None or not str(text).strip():
        raise InputError("Please enter at least one score")

    scores = []
    for part in str(text).split(","):
        part = part.strip()
        try:
            value = int(part)
        except ValueError:
            raise InputError(f"Please enter valid scores (numbers only), got '{part}'") from None
        if value < 0:
            raise InputError(f"Scores cannot be negative, got {value}")
        scores.append(value)
    return scores


def _validate_scores(values: Iterable, label: str) -> List[int]:
    values = list(values)
    if not values:
        raise InputError(f"At least one value is required for {label}")

    validated = []
    for value in values:
        if isinstance(value, bool):
            raise InputError(f"Invalid {label} entry {value!r}: expected a number")
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise InputError(f"Invalid {label} entry {value!r}: expected a number") from None
        if math.isnan(number):
            raise InputError(f"Invalid {label} entry: value is not a number")
        if number < 0:
            raise InputError(f"Invalid {label} entry {value!r}: scores cannot be negative")
        if not number.is_integer():
            raise InputError(f"Invalid {label} entry {value!r}: scores must be whole numbers")
        validated.append(int(number))
    return validated


def _coerce_category(category) -> Category:
    if isinstance(category, Category):
        return category
    try:
        return Category(str(category).strip().lower())
    except ValueError:
        options = ", ".join(member.value for member in Category)
        raise InputError(f"Unknown category '{category}' (expected one of: {options})") from None


def synthetic_timestamps(count: int, reference_time: Optional[datetime] = None) -> List[datetime]:
    """One match a week, oldest first, the newest one week before reference_time"""
    reference_time = reference_time or datetime.now()
    spacing = timedelta(days=config.MATCH_SPACING_DAYS)
    return [reference_time - spacing * (count - i) for i in range(count)]


def _normalize(category: Category, own: int, opponent: int, timestamp: datetime,
               half_time: Optional[Tuple[int, int]]) -> MatchRecord:
    """Map (own, opponent) input onto the side A / side B columns"""
    if category is Category.SIDE_B_OTHER:
        return MatchRecord(
            side_a_score=opponent,
            side_b_score=own,
            category=category,
            timestamp=timestamp,
            half_time_score=(half_time[1], half_time[0]) if half_time else None,
        )
    return MatchRecord(
        side_a_score=own,
        side_b_score=opponent,
        category=category,
        timestamp=timestamp,
        half_time_score=tuple(half_time) if half_time else None,
    )


# ============================================================================
# RECORD STORE
# ============================================================================


class MatchRecordStore:
    """Per-category collection of historical results"""

    def __init__(self):
        self._records: Dict[Category, List[MatchRecord]] = {category: [] for category in Category}

    def add_records(self, category, scores: Sequence, opponent_scores: Sequence,
                    timestamps: Optional[Sequence[datetime]] = None,
                    half_time_scores: Optional[Sequence[Optional[Tuple[int, int]]]] = None,
                    reference_time: Optional[datetime] = None) -> int:
        """
        Replace the records of one category.

        Args:
            category: Category (or its value) the records belong to
            scores: For head-to-head the side A scores, otherwise the
                scores of the side that owns the category
            opponent_scores: Side B scores for head-to-head, otherwise the
                unnamed opponent's scores
            timestamps: Optional match dates, defaults to weekly spacing
            half_time_scores: Optional (own, opponent) half-time scores
            reference_time: Anchor for synthetic timestamps, defaults to now

        Returns:
            Number of records stored
        """
        category = _coerce_category(category)
        scores = _validate_scores(scores, "scores")
        opponent_scores = _validate_scores(opponent_scores, "opponent scores")

        count = min(len(scores), len(opponent_scores))
        if len(scores) != len(opponent_scores):
            message = (f"{category.value}: {len(scores)} scores vs {len(opponent_scores)} "
                       f"opponent scores, using the first {count} matches")
            logger.warning(message)
            warnings.warn(message, DataWarning, stacklevel=2)

        if timestamps is None:
            timestamps = synthetic_timestamps(count, reference_time)
        else:
            timestamps = list(timestamps)
            if len(timestamps) < count:
                raise InputError(f"{category.value}: {count} matches but only {len(timestamps)} timestamps")

        if half_time_scores is not None:
            half_time_scores = list(half_time_scores)
            if len(half_time_scores) < count:
                raise InputError(f"{category.value}: {count} matches but only "
                                 f"{len(half_time_scores)} half-time scores")

        records = [
            _normalize(category, scores[i], opponent_scores[i], timestamps[i],
                       half_time_scores[i] if half_time_scores is not None else None)
            for i in range(count)
        ]
        records.sort(key=lambda record: record.timestamp)
        self._records[category] = records

        logger.debug("Stored %d %s records", count, category.value)
        return count

    def clear(self, category=None) -> None:
        """Drop one category, or everything when category is None"""
        if category is None:
            for key in self._records:
                self._records[key] = []
        else:
            self._records[_coerce_category(category)] = []

    def records(self, category) -> List[MatchRecord]:
        """Records of one category, oldest first"""
        return list(self._records[_coerce_category(category)])

    def all_records(self) -> List[MatchRecord]:
        return [record for category in Category for record in self._records[category]]

    def side_matches(self, side: Side) -> List[MatchRecord]:
        """Head-to-head plus the side's own records, oldest first"""
        own = Category.SIDE_A_OTHER if side is Side.A else Category.SIDE_B_OTHER
        combined = self._records[Category.H2H] + self._records[own]
        return sorted(combined, key=lambda record: record.timestamp)

    def count(self, category) -> int:
        return len(self._records[_coerce_category(category)])

    @property
    def total_count(self) -> int:
        return sum(len(records) for records in self._records.values())

    def __len__(self) -> int:
        return self.total_count

    def apply_betting_lines(self, configuration: MatchConfiguration) -> None:
        """Recompute the over-line and spread flags of every stored record"""
        for category, records in self._records.items():
            self._records[category] = [
                record.with_lines(configuration.totals_line,
                                  configuration.point_spread,
                                  configuration.spread_favorite)
                for record in records
            ]

    def snapshot(self, configuration: Optional[MatchConfiguration] = None) -> "MatchRecordStore":
        """Independent copy, with betting lines applied when a configuration is given"""
        copy = MatchRecordStore()
        for category, records in self._records.items():
            copy._records[category] = list(records)
        if configuration is not None:
            copy.apply_betting_lines(configuration)
        return copy


# ============================================================================
# CSV LOADING
# ============================================================================


class DataLoader:
    """Load match records from CSV files.

    Expected columns: category, score, opponent_score; optional date,
    ht_score and ht_opponent_score.
    """

    REQUIRED_COLUMNS = ['category', 'score', 'opponent_score']
    HALF_TIME_COLUMNS = ['ht_score', 'ht_opponent_score']
    FILE_SUFFIX = "_matches.csv"

    def __init__(self, data_dir: str = "data"):
        self.data_dir = data_dir
        self.available_datasets = self._detect_datasets()

    def _detect_datasets(self) -> Dict[str, str]:
        """Detect available match CSV files"""
        datasets = {}
        if not os.path.isdir(self.data_dir):
            logger.info("Data directory '%s' not found", self.data_dir)
            return datasets

        for file in sorted(os.listdir(self.data_dir)):
            if file.endswith(self.FILE_SUFFIX):
                datasets[file[:-len(self.FILE_SUFFIX)]] = os.path.join(self.data_dir, file)

        logger.debug("Found %d datasets: %s", len(datasets), list(datasets))
        return datasets

    def load_dataset(self, name: str, reference_time: Optional[datetime] = None) -> MatchRecordStore:
        if name not in self.available_datasets:
            raise InputError(f"Dataset '{name}' not found. Available: {list(self.available_datasets)}")
        return self.load_csv(self.available_datasets[name], reference_time=reference_time)

    def load_csv(self, file_path: str, reference_time: Optional[datetime] = None) -> MatchRecordStore:
        logger.info("Loading match records from %s", file_path)
        try:
            df = pd.read_csv(file_path)
        except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise InputError(f"Error reading CSV file: {e}") from e
        return self.from_dataframe(df, reference_time=reference_time)

    def from_dataframe(self, df: pd.DataFrame,
                       reference_time: Optional[datetime] = None) -> MatchRecordStore:
        """Build a store from a DataFrame, one category per group of rows"""
        df = df.copy()
        df.columns = [str(col).strip().lower() for col in df.columns]

        missing = [col for col in self.REQUIRED_COLUMNS if col not in df.columns]
        if missing:
            raise InputError(f"Missing columns: {missing}")

        issues = self.validate_data_integrity(df)
        if issues:
            raise InputError("; ".join(issues))

        df['category'] = df['category'].astype(str).str.strip().str.lower()
        has_dates = 'date' in df.columns
        has_half_time = all(col in df.columns for col in self.HALF_TIME_COLUMNS)

        store = MatchRecordStore()
        for category, group in df.groupby('category', sort=False):
            timestamps = list(pd.to_datetime(group['date'])) if has_dates else None
            half_time = None
            if has_half_time:
                half_time = [
                    None if pd.isna(own) or pd.isna(opp) else (int(own), int(opp))
                    for own, opp in zip(group['ht_score'], group['ht_opponent_score'])
                ]
            store.add_records(category,
                              group['score'].tolist(),
                              group['opponent_score'].tolist(),
                              timestamps=timestamps,
                              half_time_scores=half_time,
                              reference_time=reference_time)

        logger.info("Loaded %d records (%s)", store.total_count,
                    ", ".join(f"{c.value}={store.count(c)}" for c in Category))
        return store

    def validate_data_integrity(self, df: pd.DataFrame) -> List[str]:
        """List problems that would make the rows unusable"""
        issues = []
        known = {member.value for member in Category}

        categories = df['category'].astype(str).str.strip().str.lower()
        unknown = sorted(set(categories) - known)
        if unknown:
            issues.append(f"Unknown categories: {unknown}")

        for col in ['score', 'opponent_score']:
            values = pd.to_numeric(df[col], errors='coerce')
            if values.isna().any():
                issues.append(f"Missing or non-numeric values in '{col}'")
            elif (values < 0).any():
                issues.append(f"Negative values in '{col}'")
            elif not (values % 1 == 0).all():
                issues.append(f"Non-integer values in '{col}'")

        if 'date' in df.columns:
            dates = pd.to_datetime(df['date'], errors='coerce')
            if dates.isna().any():
                issues.append("Missing or unparseable values in 'date'")

        return issues


# ============================================================================
# SAMPLE DATA
# ============================================================================

SAMPLE_DATA = {
    'h2h': ([1, 2, 1, 2, 0], [1, 2, 0, 1, 1]),
    'side_a_other': ([2, 3, 1, 0, 2, 3], [0, 1, 0, 0, 1, 1]),
    'side_b_other': ([3, 2, 1, 3, 4, 2], [0, 0, 0, 1, 1, 2]),
}


def sample_store(reference_time: Optional[datetime] = None) -> MatchRecordStore:
    """Records for the bundled Liverpool vs Manchester City example"""
    store = MatchRecordStore()
    for category, (scores, opponent_scores) in SAMPLE_DATA.items():
        store.add_records(category, scores, opponent_scores, reference_time=reference_time)
    return store


def sample_configuration() -> MatchConfiguration:
    return MatchConfiguration(
        side_a_name="Liverpool",
        side_b_name="Manchester City",
        side_a_ranking=4,
        side_b_ranking=2,
        sport="football",
        side_a_formation="4-3-3",
        side_b_formation="4-2-3-1",
        venue=Venue.SIDE_A,
        importance=1.5,
        totals_line=2.5,
        point_spread=1.0,
        spread_favorite=Side.A,
    )
