"""
Parser Module for Rating Files

Turns delimited rating files into PreferenceStores.

Formats:
- DelimitedParser: configurable delimiter and token positions
- SimpleParser: user<TAB>item<TAB>rating[<TAB>timestamp]
- MovielensParser: MovieLens ratings (u.data tab files or ratings.dat '::' files)

Errors:
- IOFailure: file missing or unreadable
- ParseFailure: malformed token, with 1-based line and 0-based column

Usage:
    parser = MovielensParser()
    store = parser.parse('data/ml-100k/u.data')
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Optional, Union

import pandas as pd

from ..exceptions import IOFailure, ParseFailure
from .preference_store import PreferenceStore


logger = logging.getLogger(__name__)


class Parser(ABC):
    """Interface for anything that produces a PreferenceStore from a file."""

    @abstractmethod
    def parse(self, path: Union[str, Path]) -> PreferenceStore:
        """
        Parse a file into a PreferenceStore.

        Raises:
            IOFailure: If the file cannot be read
            ParseFailure: If a token is malformed
        """
        pass


class DelimitedParser(Parser):
    """
    Parser for delimited files with configurable token positions.

    Example (MovieTweetings ratings.dat, 'user::item::rating::time'):
        >>> parser = DelimitedParser(delimiter=':', user_tok=0, item_tok=2,
        ...                          pref_tok=4, time_tok=6)
    """

    def __init__(
        self,
        delimiter: str = '\t',
        user_tok: int = 0,
        item_tok: int = 1,
        pref_tok: int = 2,
        time_tok: Optional[int] = 3,
        id_type: Callable[[str], Any] = int,
        encoding: str = 'utf-8'
    ):
        """
        Initialize parser.

        Args:
            delimiter: Token separator (multi-character separators are allowed)
            user_tok: Column of the user id
            item_tok: Column of the item id
            pref_tok: Column of the preference value
            time_tok: Column of the timestamp, or None; rows shorter than
                this column are read without timestamp
            id_type: Converter applied to user and item tokens
            encoding: File encoding
        """
        self.delimiter = delimiter
        self.user_tok = user_tok
        self.item_tok = item_tok
        self.pref_tok = pref_tok
        self.time_tok = time_tok
        self.id_type = id_type
        self.encoding = encoding

    def parse(self, path: Union[str, Path]) -> PreferenceStore:
        path = Path(path)
        df = self._read_frame(path, self._resolve_delimiter(path))

        store = PreferenceStore()
        for idx, tokens in enumerate(df.itertuples(index=False, name=None)):
            line = idx + 1
            if all(self._is_blank(tok) for tok in tokens):
                continue
            self._parse_tokens(tokens, store, path, line)

        logger.info(f"Parsed {path.name}: {store.num_preferences()} preferences, "
                    f"{len(store.users())} users, {len(store.items())} items")
        return store

    def _resolve_delimiter(self, path: Path) -> str:
        return self.delimiter

    def _read_frame(self, path: Path, delimiter: str) -> pd.DataFrame:
        """
        Read every token as a string; line N of the file is row N-1.

        Rows may have different lengths (e.g. an optional timestamp column);
        short rows are padded with None.
        """
        if not path.exists():
            raise IOFailure(path, "file not found")

        try:
            with open(path, 'r', encoding=self.encoding) as f:
                lines = [line.rstrip('\r\n') for line in f]
        except (OSError, UnicodeDecodeError) as e:
            raise IOFailure(path, str(e)) from e

        if not lines:
            logger.warning(f"{path} is empty")
            return pd.DataFrame()
        return pd.Series(lines, dtype=object).str.split(delimiter, expand=True, regex=False)

    @staticmethod
    def _is_blank(token: Any) -> bool:
        if token is None or (isinstance(token, float) and pd.isna(token)):
            return True
        return isinstance(token, str) and token.strip() == ''

    def _token(self, tokens: tuple, column: int, path: Path, line: int) -> str:
        if column >= len(tokens) or self._is_blank(tokens[column]):
            raise ParseFailure("missing token", path, line, column)
        return tokens[column].strip()

    def _convert(self, converter: Callable, token: str, what: str,
                 path: Path, line: int, column: int) -> Any:
        try:
            return converter(token)
        except (TypeError, ValueError) as e:
            raise ParseFailure(f"invalid {what} {token!r}", path, line, column) from e

    def _parse_tokens(self, tokens: tuple, store: PreferenceStore, path: Path, line: int):
        user = self._convert(self.id_type, self._token(tokens, self.user_tok, path, line),
                             'user id', path, line, self.user_tok)
        item = self._convert(self.id_type, self._token(tokens, self.item_tok, path, line),
                             'item id', path, line, self.item_tok)
        pref = self._convert(float, self._token(tokens, self.pref_tok, path, line),
                             'preference', path, line, self.pref_tok)
        store.add_preference(user, item, pref)

        if self.time_tok is None:
            return
        if self.time_tok >= len(tokens) or self._is_blank(tokens[self.time_tok]):
            return
        time = self._convert(self._to_timestamp, tokens[self.time_tok].strip(),
                             'timestamp', path, line, self.time_tok)
        store.add_timestamp(user, item, time)

    @staticmethod
    def _to_timestamp(token: str) -> int:
        value = float(token)
        if value != int(value):
            raise ValueError(token)
        return int(value)


class SimpleParser(DelimitedParser):
    """Tab-separated user, item, rating and optional timestamp."""

    def __init__(self, delimiter: str = '\t', **kwargs):
        super().__init__(delimiter=delimiter, user_tok=0, item_tok=1,
                         pref_tok=2, time_tok=3, **kwargs)


class MovielensParser(DelimitedParser):
    """
    Parser for MovieLens rating files.

    Columns are user, item, rating, timestamp. The separator is '::' when
    the first non-empty line contains it (ml-1m/ml-10m), otherwise a tab
    (ml-100k u.data).
    """

    USER_TOK = 0
    ITEM_TOK = 1
    RATING_TOK = 2
    TIME_TOK = 3

    def __init__(self, **kwargs):
        super().__init__(delimiter='\t', user_tok=self.USER_TOK, item_tok=self.ITEM_TOK,
                         pref_tok=self.RATING_TOK, time_tok=self.TIME_TOK, **kwargs)

    def _resolve_delimiter(self, path: Path) -> str:
        if not path.exists():
            raise IOFailure(path, "file not found")
        try:
            with open(path, 'r', encoding=self.encoding) as f:
                for line in f:
                    if line.strip():
                        return '::' if '::' in line else '\t'
        except (OSError, UnicodeDecodeError) as e:
            raise IOFailure(path, str(e)) from e
        return '\t'
