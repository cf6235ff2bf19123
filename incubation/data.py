import logging
from typing import Iterator, NamedTuple, Optional, Sequence, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

"""
Interval-censored line list representation: each record only bounds the
exposure time to [EL, ER] and the symptom onset time to [SL, SR].
"""

# bounds are float days since the dataset epoch
bounds = ["EL", "ER", "SL", "SR"]

class Observation(NamedTuple):
    id: str
    EL: float   # earliest possible exposure
    ER: float   # latest possible exposure
    SL: float   # earliest possible symptom onset
    SR: float   # latest possible symptom onset

    @property
    def min_incubation(self) -> float:
        return max(0.0, self.SL - self.ER)

    @property
    def max_incubation(self) -> float:
        return self.SR - self.EL

def admissible(frame: pd.DataFrame, lo: str = "SL", hi: str = "SR") -> pd.Series:
    """ mask of rows whose exposure and onset windows are complete and correctly ordered """
    EL, ER, SL, SR = frame["EL"], frame["ER"], frame[lo], frame[hi]
    complete = EL.notna() & ER.notna() & SL.notna() & SR.notna()
    return complete & (EL <= ER) & (SL <= SR) & (ER <= SR) & (EL <= SL)

class Dataset():
    """ ordered, immutable collection of censored observations sharing a reference epoch """
    def __init__(self, frame: pd.DataFrame, epoch: Optional[Union[str, pd.Timestamp]] = None):
        missing = [col for col in ["id"] + bounds if col not in frame.columns]
        if missing:
            raise ValueError(f"line list is missing columns: {missing}")
        frame = frame.copy()
        frame[bounds] = frame[bounds].astype(float)
        valid = admissible(frame)
        if (~valid).any():
            logger.debug("dropping %s observations violating interval ordering: %s", (~valid).sum(), list(frame.loc[~valid, "id"]))
        self._frame = frame[valid].reset_index(drop = True)
        self.epoch  = pd.Timestamp(epoch) if epoch is not None else None

    @staticmethod
    def from_observations(observations: Sequence[Observation], epoch = None) -> "Dataset":
        return Dataset(pd.DataFrame(list(observations), columns = Observation._fields), epoch)

    @staticmethod
    def from_intervals(intervals: np.ndarray, epoch = None) -> "Dataset":
        intervals = np.atleast_2d(np.asarray(intervals, dtype = float))
        frame = pd.DataFrame(intervals, columns = bounds)
        frame.insert(0, "id", [str(i) for i in range(len(frame))])
        return Dataset(frame, epoch)

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def ids(self) -> pd.Series:
        return self._frame["id"].copy()

    @property
    def intervals(self) -> np.ndarray:
        """ (n, 4) array of EL, ER, SL, SR """
        return self._frame[bounds].to_numpy(dtype = float, copy = True)

    def __len__(self) -> int:
        return len(self._frame)

    def __iter__(self) -> Iterator[Observation]:
        for row in self._frame[["id"] + bounds].itertuples(index = False):
            yield Observation(str(row[0]), *map(float, row[1:]))

    def __getitem__(self, idx: int) -> Observation:
        row = self._frame.iloc[idx]
        return Observation(str(row["id"]), *(float(row[_]) for _ in bounds))

    def __repr__(self) -> str:
        epoch = self.epoch.date() if self.epoch is not None else None
        return f"Dataset(n = {len(self)}, epoch = {epoch})"

    def subset(self, mask: Union[pd.Series, np.ndarray, Sequence[bool]]) -> "Dataset":
        mask = np.asarray(mask, dtype = bool)
        return Dataset(self._frame[mask], self.epoch)

    def fever_only(self) -> "Dataset":
        """ restrict to records with a fever onset window of positive width, using it as the onset window """
        if not {"SL_fever", "SR_fever"} <= set(self._frame.columns):
            return Dataset(self._frame.iloc[0:0], self.epoch)
        SL, SR = self._frame["SL_fever"], self._frame["SR_fever"]
        known = SL.notna() & SR.notna()
        positive = known & (SR > SL)
        if (known & ~positive).any():
            logger.debug("dropping %s non-positive fever onset windows: %s", (known & ~positive).sum(), list(self._frame.loc[known & ~positive, "id"]))
        frame = self._frame[positive].copy()
        frame["SL"] = frame["SL_fever"]
        frame["SR"] = frame["SR_fever"]
        return Dataset(frame, self.epoch)

    def foreign_only(self, origin: str = "China") -> "Dataset":
        """ restrict to records whose destination lies outside the outbreak origin country """
        if "country" not in self._frame.columns:
            return Dataset(self._frame.iloc[0:0], self.epoch)
        country = self._frame["country"].astype("string").str.strip().str.lower()
        return self.subset((country.notna() & (country != origin.strip().lower())).to_numpy(dtype = bool))

    def resample(self, rng: np.random.Generator) -> "Dataset":
        """ same-size resample with replacement """
        idx = rng.integers(0, len(self), size = len(self))
        return Dataset(self._frame.iloc[idx], self.epoch)
