"""
Preference Store Module

In-memory sparse store of user -> item -> preference, with an optional
parallel user -> item -> timestamp map. This is the data structure every
other receval component reads and produces: parsers fill it, splitters
partition it, recommenders emit one, and metrics consume it.

Usage:
    store = PreferenceStore()
    store.add_preference(1, 10, 4.0)
    store.add_timestamp(1, 10, 881250949)
    store.users()   # {1}
    store.items()   # {10}
"""

import logging
from typing import Any, Dict, Hashable, Iterator, List, Optional, Set, Tuple

import pandas as pd


logger = logging.getLogger(__name__)


USER_COL = 'user_id'
ITEM_COL = 'item_id'
RATING_COL = 'rating'
TIMESTAMP_COL = 'timestamp'


class PreferenceStore:
    """
    Sparse user-item preference store.

    Repeated inserts of the same (user, item) pair overwrite the previous
    value. Every (user, item) in the timestamp map is also present in the
    preference map; the reverse need not hold.

    Stores are populated by a single producer and treated as read-only once
    handed to a splitter or a metric.
    """

    def __init__(self):
        self._preferences: Dict[Hashable, Dict[Hashable, float]] = {}
        self._timestamps: Dict[Hashable, Dict[Hashable, int]] = {}

    def add_preference(self, user: Hashable, item: Hashable, value: float):
        """Insert or overwrite the preference of `user` for `item`."""
        self._preferences.setdefault(user, {})[item] = float(value)

    def add_timestamp(self, user: Hashable, item: Hashable, time: int):
        """
        Attach a timestamp to an existing (user, item) preference.

        Raises:
            ValueError: If the pair has no preference
        """
        if item not in self._preferences.get(user, {}):
            raise ValueError(
                f"Cannot timestamp ({user}, {item}): no preference recorded"
            )
        self._timestamps.setdefault(user, {})[item] = int(time)

    def preferences(self) -> Dict[Hashable, Dict[Hashable, float]]:
        return self._preferences

    def timestamps(self) -> Dict[Hashable, Dict[Hashable, int]]:
        return self._timestamps

    def users(self) -> Set[Hashable]:
        return set(self._preferences.keys())

    def items(self) -> Set[Hashable]:
        items = set()
        for user_prefs in self._preferences.values():
            items.update(user_prefs.keys())
        return items

    def user_preferences(self, user: Hashable) -> Dict[Hashable, float]:
        """Preferences of one user (empty dict for unknown users)."""
        return self._preferences.get(user, {})

    def get_preference(
        self,
        user: Hashable,
        item: Hashable,
        default: Optional[float] = None
    ) -> Optional[float]:
        return self._preferences.get(user, {}).get(item, default)

    def get_timestamp(self, user: Hashable, item: Hashable) -> Optional[int]:
        return self._timestamps.get(user, {}).get(item)

    def has_timestamps(self) -> bool:
        return bool(self._timestamps)

    def num_preferences(self) -> int:
        return sum(len(prefs) for prefs in self._preferences.values())

    def triples(self) -> List[Tuple[Hashable, Hashable, float]]:
        """All (user, item, value) triples in canonical sorted order."""
        return [
            (user, item, self._preferences[user][item])
            for user in sorted(self._preferences)
            for item in sorted(self._preferences[user])
        ]

    def copy(self) -> 'PreferenceStore':
        clone = PreferenceStore()
        for user, prefs in self._preferences.items():
            clone._preferences[user] = dict(prefs)
        for user, times in self._timestamps.items():
            clone._timestamps[user] = dict(times)
        return clone

    def __len__(self) -> int:
        return self.num_preferences()

    def __contains__(self, pair: Tuple[Hashable, Hashable]) -> bool:
        user, item = pair
        return item in self._preferences.get(user, {})

    def __iter__(self) -> Iterator[Tuple[Hashable, Hashable, float]]:
        return iter(self.triples())

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, PreferenceStore):
            return NotImplemented
        return (
            self._preferences == other._preferences
            and self._timestamps == other._timestamps
        )

    def __repr__(self) -> str:
        return (
            f"PreferenceStore(users={len(self._preferences)}, "
            f"items={len(self.items())}, preferences={self.num_preferences()})"
        )

    # ------------------------------------------------------------------
    # pandas bridges
    # ------------------------------------------------------------------

    def to_dataframe(self) -> pd.DataFrame:
        """
        Export as a DataFrame with columns user_id, item_id, rating and,
        when any timestamp is present, timestamp (missing ones are NA).
        """
        rows = []
        with_time = self.has_timestamps()
        for user, item, value in self.triples():
            row = {USER_COL: user, ITEM_COL: item, RATING_COL: value}
            if with_time:
                row[TIMESTAMP_COL] = self.get_timestamp(user, item)
            rows.append(row)

        columns = [USER_COL, ITEM_COL, RATING_COL]
        if with_time:
            columns.append(TIMESTAMP_COL)
        df = pd.DataFrame(rows, columns=columns)
        if with_time:
            df[TIMESTAMP_COL] = df[TIMESTAMP_COL].astype('Int64')
        return df

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        user_col: str = USER_COL,
        item_col: str = ITEM_COL,
        rating_col: str = RATING_COL,
        timestamp_col: Optional[str] = TIMESTAMP_COL
    ) -> 'PreferenceStore':
        """
        Build a store from an interactions DataFrame.

        Rows later in the frame overwrite earlier duplicates. The timestamp
        column is optional; missing values are skipped.
        """
        required = [user_col, item_col, rating_col]
        missing_cols = [col for col in required if col not in df.columns]
        if missing_cols:
            raise ValueError(f"Missing required columns: {missing_cols}")

        use_time = timestamp_col is not None and timestamp_col in df.columns
        times = df[timestamp_col].tolist() if use_time else [None] * len(df)

        store = cls()
        for user, item, value, time in zip(
            df[user_col].tolist(), df[item_col].tolist(), df[rating_col].tolist(), times
        ):
            store.add_preference(user, item, value)
            if time is not None and not pd.isna(time):
                store.add_timestamp(user, item, time)

        logger.debug(f"Built {store!r} from DataFrame with {len(df)} rows")
        return store
