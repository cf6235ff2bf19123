import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

# code readability
days = 1

def cwd() -> Path:
    try:
        return Path(__file__).resolve().parent
    except NameError:
        return Path.cwd()

def fmt_params(**kwargs) -> str:
    """  get useful experiment tag from a dictionary of experiment settings """
    return ", ".join(f"{k.replace('_', ' ')}: {v}" for (k, v) in kwargs.items())

def mkdir(p: Path, exist_ok: bool = True) -> Path:
    p.mkdir(exist_ok = exist_ok, parents = True)
    return p

def setup(root: Optional[Path] = None, **kwargs) -> Tuple[Path, ...]:
    """ configure logging and create data/figs directories under root """
    root = Path(root) if root else cwd()
    if "--level" in sys.argv and "level" not in kwargs:
        parser = argparse.ArgumentParser()
        parser.add_argument("--level", type=str)
        flags, _ = parser.parse_known_args(sys.argv[1:])
        kwargs["level"] = flags.level
    if isinstance(kwargs.get("level"), str):
        kwargs["level"] = kwargs["level"].upper()
    logging.basicConfig(**kwargs)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)
    return (mkdir(root / "data"), mkdir(root / "figs"))
