from collections.abc import Callable, Iterable, Mapping
from functools import partial
from pathlib import Path
from typing import Any

import polars as pl
from pathos.pools import ProcessPool as Pool
from rich.console import Console
from rich.progress import Progress


def calculate_over_pool(
    func: Callable,
    objects: Iterable,
    num_workers: int | None = None,
    debug: bool = False,
    chunksize: int | None = None,
    console: Console | None = None,
    n_jobs: int | None = None,
    task_name: str = "Working",
    disable_progress: bool = False,
    **func_kwargs: Any,
) -> list:
    """Map *func* over *objects*, in a process pool unless *debug* is set.

    Results are returned in the order of *objects*.
    """
    if debug:
        results = [func(object, **func_kwargs) for object in objects]

    else:
        func_part = partial(func, **func_kwargs)
        results = []
        if n_jobs is None:
            n_jobs = len(objects) if hasattr(objects, "__len__") else num_workers
        if chunksize is None:
            n = len(objects) if hasattr(objects, "__len__") else (n_jobs or 1)
            workers = num_workers or 1
            chunksize = max(1, n // (workers * 4))
        with Progress(
            console=console, transient=True, disable=disable_progress
        ) as progress:
            task_id = progress.add_task(f"{task_name}...", total=n_jobs)
            with Pool(num_workers, maxtasksperchild=4) as pool:
                for result in pool.imap(func_part, objects, chunksize=chunksize):
                    results.append(result)
                    progress.advance(task_id)
    return results


def save_events(
    frames: Mapping[str, pl.DataFrame],
    dest_path: str | Path,
) -> list[Path]:
    """Write one parquet file of events per subject into *dest_path*.

    Parameters
    ----------
    frames : Mapping[str, pl.DataFrame]
        Event tables keyed by subject identifier (see
        :meth:`~spectralevents.detection.detector.SpectralEventsResult.frames`).
    dest_path : str | Path
        Output directory, created if needed.

    Returns
    -------
    list[Path]
        Written files, in the order of *frames*.
    """
    dest_path = Path(dest_path)
    dest_path.mkdir(parents=True, exist_ok=True)
    written = []
    for subject, df in frames.items():
        path = dest_path / f"{subject}.parquet"
        df.write_parquet(path)
        written.append(path)
    return written
