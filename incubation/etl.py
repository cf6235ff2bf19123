import logging
from pathlib import Path
from typing import Optional, Union

import numpy as np
import pandas as pd
import requests

from .data import Dataset

logger = logging.getLogger(__name__)

""" tools to load and clean traveler line lists with censored exposure and onset windows """

# first date on which exposure is considered possible
study_start = "2019-12-01"

date_columns = [
    "el",       # earliest possible exposure
    "er",       # latest possible exposure
    "sl",       # earliest possible symptom onset
    "sr",       # latest possible symptom onset
    "sl_fever", # earliest possible fever onset
    "sr_fever", # latest possible fever onset
    "pr",       # latest possible report date
]

required_columns = ["id", "el", "er", "sl", "sr", "pr", "dual_review"]
optional_columns = ["sl_fever", "sr_fever", "country"]

confirmations = {"true", "t", "yes", "y", "1", "1.0", "x"}

def download_data(data_path: Path, filename: str, base_url: str):
    """ download a file with filename from the base_url to the directory at data_path  """
    url = base_url + filename
    response = requests.get(url)
    response.raise_for_status()
    with (data_path/filename).open('wb') as dst:
        dst.write(response.content)
    return data_path/filename

def standardize_column_headers(df: pd.DataFrame):
    df.columns = df.columns.str.lower().str.strip().str.replace(" ", "_").str.replace('[^a-zA-Z0-9_]', '', regex = True)

def confirmed(flag) -> bool:
    """ whether a dual-review flag marks the record as checked by two reviewers """
    if pd.isna(flag):
        return False
    if isinstance(flag, (bool, np.bool_)):
        return bool(flag)
    return str(flag).strip().lower() in confirmations

def load_line_list(path: Path, dayfirst: bool = False) -> pd.DataFrame:
    """ read raw traveler line list; unparseable dates become missing values """
    df = pd.read_csv(path)
    standardize_column_headers(df)
    missing = [col for col in required_columns if col not in df.columns]
    if missing:
        raise ValueError(f"{path} is missing required columns: {missing}")
    for col in optional_columns:
        if col not in df.columns:
            df[col] = np.nan
    for col in date_columns:
        df[col] = pd.to_datetime(df[col], errors = "coerce", dayfirst = dayfirst)
    df["id"] = df["id"].astype(str)
    return df

def to_days(dates: pd.Series, epoch: pd.Timestamp) -> pd.Series:
    return (pd.to_datetime(dates) - epoch) / pd.Timedelta(days = 1)

def impute_bounds(raw: pd.DataFrame, start: Union[str, pd.Timestamp] = study_start) -> pd.DataFrame:
    """ fill missing window bounds; the order of substitutions matters since later rules read imputed values """
    df = raw.copy()
    for col in optional_columns:
        if col not in df.columns:
            df[col] = np.nan
    for col in date_columns:
        df[col] = pd.to_datetime(df[col], errors = "coerce")
    # missing earliest exposure -> study start
    df["el"] = df["el"].fillna(pd.Timestamp(start))
    # missing latest onset -> latest possible report
    df["sr"] = df["sr"].fillna(df["pr"])
    # remaining bounds fall back to their paired (imputed) bound
    df["sl"] = df["sl"].fillna(df["el"])
    df["er"] = df["er"].fillna(df["sr"])
    # fever onset bounds are only derived if the other fever bound is known
    fever_sl_missing = df["sl_fever"].isna() & df["sr_fever"].notna()
    fever_sr_missing = df["sr_fever"].isna() & df["sl_fever"].notna()
    df.loc[fever_sl_missing, "sl_fever"] = df.loc[fever_sl_missing, "sl"]
    df.loc[fever_sr_missing, "sr_fever"] = df.loc[fever_sr_missing, "sr"]
    return df

def clean(raw: pd.DataFrame, start: Union[str, pd.Timestamp] = study_start, epoch: Optional[Union[str, pd.Timestamp]] = None) -> Dataset:
    """ impute missing bounds, convert to days since epoch, and drop inadmissible records """
    epoch = pd.Timestamp(epoch if epoch is not None else start)
    df = impute_bounds(raw, start)

    frame = pd.DataFrame({
        "id"       : df["id"].astype(str),
        "EL"       : to_days(df["el"],       epoch),
        "ER"       : to_days(df["er"],       epoch),
        "SL"       : to_days(df["sl"],       epoch),
        "SR"       : to_days(df["sr"],       epoch),
        "SL_fever" : to_days(df["sl_fever"], epoch),
        "SR_fever" : to_days(df["sr_fever"], epoch),
        "country"  : df["country"],
    })

    complete  = frame[["EL", "ER", "SL", "SR"]].notna().all(axis = 1)
    reviewed  = df["dual_review"].map(confirmed).astype(bool)
    positive  = ((frame["ER"] - frame["EL"]) > 0) & ((frame["SR"] - frame["SL"]) > 0)
    ordered   = (frame["ER"] <= frame["SR"]) & (frame["EL"] <= frame["SL"])
    keep = complete & reviewed & positive & ordered

    logger.info("retaining %s of %s line list records", int(keep.sum()), len(frame))
    for (reason, mask) in [("incomplete", ~complete), ("unreviewed", ~reviewed), ("non-positive window", complete & ~positive), ("misordered windows", complete & ~ordered)]:
        if mask.any():
            logger.debug("%s records: %s", reason, list(frame.loc[mask, "id"]))

    return Dataset(frame[keep], epoch)

def summarize(dataset: Dataset) -> pd.Series:
    """ size and interval width summary for a dataset variant """
    EL, ER, SL, SR = dataset.intervals.T
    return pd.Series({
        "observations"          : len(dataset),
        "median exposure width" : np.median(ER - EL) if len(dataset) else np.nan,
        "median onset width"    : np.median(SR - SL) if len(dataset) else np.nan,
        "min incubation bound"  : np.min(np.clip(SL - ER, 0, None)) if len(dataset) else np.nan,
        "max incubation bound"  : np.max(SR - EL) if len(dataset) else np.nan,
    })
