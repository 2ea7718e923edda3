# Script that geocodes an uploaded person/address table and writes the result sets
from argparse import ArgumentParser
import logging
import sys

from batch_geocoding.geocoding.export import export_geojson, export_records
from batch_geocoding.geocoding.models import GeocodingPipelineConfig
from batch_geocoding.geocoding.views import count_by_country
from batch_geocoding.pipeline import GeocodingPipeline
from batch_geocoding.utils.errors import GeocodingError

from pathlib import Path

if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    parser = ArgumentParser(description='Geocode a CSV/XLSX file of names and addresses')
    parser.add_argument('input', type=Path)
    parser.add_argument('--outdir', '-o', type=Path, default=Path('./output'))
    parser.add_argument('--format', '-f', choices=['xlsx', 'csv'], default='xlsx')
    parser.add_argument('--batch-size', '-b', type=int)
    parser.add_argument('--fallback-to-origin', action='store_true')
    parser.add_argument('--geojson', '-g', action='store_true')
    args = parser.parse_args()

    overrides = {}
    if args.batch_size:
        overrides['batch_size'] = args.batch_size
    if args.fallback_to_origin:
        overrides['fallback_to_origin'] = True

    try:
        config = GeocodingPipelineConfig.from_env(**overrides)
        pipeline = GeocodingPipeline(config, show_progress=True)
        validated, report = pipeline.run_file(args.input.read_bytes(), filename=args.input.name)
    except GeocodingError as e:
        print(f'Error: {e}')
        sys.exit(1)

    args.outdir.mkdir(parents=True, exist_ok=True)
    ext = args.format
    (args.outdir / f'geocoded.{ext}').write_bytes(export_records(report.succeeded, fmt=ext))
    (args.outdir / f'failed.{ext}').write_bytes(export_records(report.failed, fmt=ext))
    (args.outdir / f'invalid.{ext}').write_bytes(export_records(validated.invalid, fmt=ext))
    if args.geojson:
        (args.outdir / 'geocoded.geojson').write_text(export_geojson(report.succeeded))

    print(f'\nRows: {report.total_rows} ({report.valid_count} valid, {report.invalid_count} invalid)')
    print(f'Geocoded: {len(report.succeeded)}  Failed: {len(report.failures)}')
    for country, count in count_by_country(report.succeeded):
        print(f'  {country}: {count}')
