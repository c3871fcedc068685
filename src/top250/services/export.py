from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable

from .films import Film


def export_films_to_csv(films: Iterable[Film], *, output_path: Path) -> int:
    rows = sorted(films, key=lambda film: film.position)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.writer(fh)
        writer.writerow(["Position", "Title", "Year", "Rating", "Budget", "Gross", "Poster", "Id"])
        for film in rows:
            writer.writerow(
                [
                    film.position,
                    film.title,
                    film.year,
                    film.rating,
                    film.budget,
                    film.gross,
                    film.poster,
                    film.id,
                ]
            )
    return len(rows)
