"""
Export the downloadable JSON datasets as CSV files
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import polars as pl
from tqdm import tqdm

from config.settings import DATA_DIR, DOWNLOAD_CATALOG, EXPORT_DIR, LoggingConfig
from src.loaders.json_loader import JsonDataLoader

logging.basicConfig(level=LoggingConfig.LEVEL, format=LoggingConfig.FORMAT)
logger = logging.getLogger(__name__)

LIST_SEPARATOR = ";"


def _flatten_column(name: str, dtype: pl.DataType) -> pl.Expr:
    """CSV-safe version of one column: lists joined, structs as JSON text"""
    col = pl.col(name)
    if isinstance(dtype, pl.Struct):
        return col.struct.json_encode()
    if isinstance(dtype, pl.List):
        if isinstance(dtype.inner, pl.Struct):
            element = pl.element().struct.json_encode()
        else:
            element = pl.element().cast(pl.Utf8)
        return col.list.eval(element).list.join(LIST_SEPARATOR)
    return col


def flatten_for_csv(df: pl.DataFrame) -> pl.DataFrame:
    return df.select([_flatten_column(name, dtype) for name, dtype in df.schema.items()])


def export_dataset(loader: JsonDataLoader, filename: str, output_dir: Path) -> Optional[Path]:
    """Write one dataset as CSV; returns None for datasets that are not record lists"""
    records = loader.load_records(filename)
    if not isinstance(records, list):
        logger.info(f"Skipping {filename}: not a list of records")
        return None

    df = flatten_for_csv(loader.load_frame(filename))
    output_path = output_dir / f"{Path(filename).stem}.csv"
    df.write_csv(output_path)
    logger.info(f"Wrote {df.height:,} rows to {output_path}")
    return output_path


def export_all(data_dir: Path, output_dir: Path, only: Optional[List[str]] = None) -> List[Path]:
    """Export every available catalog dataset"""
    loader = JsonDataLoader(data_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    filenames = [entry[1] for entry in DOWNLOAD_CATALOG]
    if only:
        unknown = [f for f in only if f not in filenames]
        if unknown:
            raise ValueError(f"Not in the download catalog: {', '.join(unknown)}")
        filenames = [f for f in filenames if f in only]

    written = []
    for filename in tqdm(filenames, desc="Exporting datasets", unit="file"):
        if not loader.exists(filename):
            logger.warning(f"Skipping {filename}: file not found in {data_dir}")
            continue
        path = export_dataset(loader, filename, output_dir)
        if path is not None:
            written.append(path)
    return written


def main(argv: Optional[List[str]] = None):
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Export OpenPrescriber download datasets to CSV')
    parser.add_argument('--data-dir', default=str(DATA_DIR),
                        help='Directory holding the JSON data files')
    parser.add_argument('--output-dir', default=str(EXPORT_DIR),
                        help='Directory to write CSV files to')
    parser.add_argument('--only', action='append', metavar='FILE',
                        help='Export only this catalog file (repeatable)')

    args = parser.parse_args(argv)

    try:
        written = export_all(Path(args.data_dir), Path(args.output_dir), args.only)
        logger.info(f"Exported {len(written)} datasets to {args.output_dir}")
    except KeyboardInterrupt:
        logger.info("Export interrupted by user")
    except Exception as e:
        logger.error(f"Export failed with error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
