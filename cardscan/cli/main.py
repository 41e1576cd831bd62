"""
cardscan/cli/main.py: CLI entry point using Click

Commands:
- scan photos/ --out results.json - Identify card photos
- lookup BF-108 --name "Bo" - Explain a catalog match
- parse "sc o45" - Show how OCR text parses
- preprocess card.jpg --out-dir debug/ - Write the binarized OCR regions
- import-catalog card-database.json - Load the catalog JSON into SQLite
"""

import asyncio
import click
from pathlib import Path
from datetime import datetime
import json
import logging

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _load_catalog(catalog_path, database_path):
    """Catalog from SQLite when a database is given, else from JSON."""
    from cardscan.catalog.loader import Catalog, CatalogUnavailableError, load_catalog_or_unavailable

    if database_path:
        from cardscan.database.schema import make_session_factory
        from cardscan.database.db import load_catalog_from_database

        engine, SessionLocal = make_session_factory(database_path)
        db = SessionLocal()
        try:
            return load_catalog_from_database(db)
        except CatalogUnavailableError as e:
            logger.error(f"Catalog unavailable: {e}")
            return Catalog.unavailable()
        finally:
            db.close()
            engine.dispose()

    return load_catalog_or_unavailable(catalog_path)


@click.group()
def cli():
    """Card identifier scanner CLI"""
    pass


@cli.command()
@click.argument('path', type=click.Path(exists=True))
@click.option('--out', 'output_path', type=click.Path(), help='Write JSON results here (default: stdout)')
@click.option('--catalog', 'catalog_path', type=click.Path(), default=None, help='Catalog JSON (default: CATALOG_PATH)')
@click.option('--database', 'database_path', type=click.Path(exists=True), default=None, help='Read the catalog from this SQLite file instead')
@click.option('--threshold', type=float, default=None, help='OCR confidence threshold (0-100)')
@click.option('--detect/--no-detect', default=True, help='Apply card boundary correction first')
@click.option('--paid/--no-paid', default=True, help='Allow the paid AI fallback when ANTHROPIC_API_KEY is set')
def scan(path, output_path, catalog_path, database_path, threshold, detect, paid):
    """Identify card photos (a single image or a directory of images)."""
    from tqdm import tqdm
    from cardscan.config import OCR_CONFIDENCE_THRESHOLD
    from cardscan.detection.card_detector import BoundaryCorrector
    from cardscan.ocr.tesseract_service import TesseractRecognizer
    from cardscan.recognition.ai_extractor import AnthropicExtractor
    from cardscan.recognition.orchestrator import ScanOrchestrator
    from cardscan.utils.images import find_images

    image_paths = find_images(path)
    if not image_paths:
        logger.error(f"No images found in {path}")
        return

    logger.info(f"Found {len(image_paths)} images to process")

    catalog = _load_catalog(catalog_path, database_path)

    recognizer = TesseractRecognizer()
    if not recognizer.is_available():
        logger.warning("Tesseract is not available, every scan will need the paid path")

    extractor = AnthropicExtractor() if paid else None
    if extractor is not None and not extractor.is_available():
        logger.warning("ANTHROPIC_API_KEY is not set, paid fallback disabled")

    orchestrator = ScanOrchestrator(
        catalog,
        recognizer=recognizer,
        extractor=extractor,
        boundary_corrector=BoundaryCorrector() if detect else None,
        confidence_threshold=threshold if threshold is not None else OCR_CONFIDENCE_THRESHOLD,
    )

    def read_images():
        for image_path in tqdm(image_paths, desc="Scanning cards"):
            try:
                yield image_path.read_bytes()
            except OSError as e:
                logger.error(f"Could not read {image_path}: {e}")
                yield b""

    start_time = datetime.now()
    outcomes = asyncio.run(orchestrator.scan_batch(read_images()))
    duration = (datetime.now() - start_time).total_seconds()

    results = []
    for image_path, outcome in zip(image_paths, outcomes):
        result = outcome.to_dict()
        result['scanned_path'] = str(image_path)
        results.append(result)

    usage = orchestrator.usage.snapshot()
    report = {
        'timestamp': start_time.isoformat(),
        'total_images': len(image_paths),
        'duration_seconds': duration,
        'usage': usage.to_dict(),
        'results': results,
    }

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2)
        logger.info(f"Results: {output_path}")
    else:
        click.echo(json.dumps(report, indent=2))

    accepted = usage.free_accepted + usage.paid_accepted
    logger.info(
        f"Scan completed: {accepted}/{len(results)} identified "
        f"({usage.free_accepted} free, {usage.paid_accepted} paid, cost ${usage.total_cost:.3f}, "
        f"free rate {usage.free_rate:.1f}%)"
    )


@cli.command()
@click.argument('identifier')
@click.option('--name', 'name_hint', default=None, help='Printed name to disambiguate shared card numbers')
@click.option('--catalog', 'catalog_path', type=click.Path(), default=None, help='Catalog JSON (default: CATALOG_PATH)')
@click.option('--database', 'database_path', type=click.Path(exists=True), default=None, help='Read the catalog from this SQLite file instead')
def lookup(identifier, name_hint, catalog_path, database_path):
    """Resolve a card number against the catalog and explain the decision."""
    from cardscan.recognition.matcher import CatalogMatcher

    catalog = _load_catalog(catalog_path, database_path)
    resolution = CatalogMatcher(catalog).resolve(identifier, name_hint)
    click.echo(json.dumps(resolution.to_dict(), indent=2))


@cli.command()
@click.argument('text')
def parse(text):
    """Show how raw OCR text normalizes and parses."""
    from cardscan.ocr.identifier import normalize_ocr_text, extract_identifier, extract_name_hint

    click.echo(json.dumps({
        'raw': text,
        'normalized': normalize_ocr_text(text),
        'identifier': extract_identifier(text),
        'name_hint': extract_name_hint(text),
    }, indent=2))


@cli.command()
@click.argument('image_path', type=click.Path(exists=True))
@click.option('--out-dir', type=click.Path(), default='preprocessed', help='Directory for region images')
@click.option('--detect/--no-detect', default=True, help='Apply card boundary correction first')
def preprocess(image_path, out_dir, detect):
    """Write the binarized identifier regions of a photo for inspection."""
    import cv2
    from cardscan.detection.card_detector import detect_and_warp
    from cardscan.ocr.preprocess import Preprocessor
    from cardscan.ocr.regions import DEFAULT_REGIONS
    from cardscan.utils.images import load_image

    image = load_image(image_path)
    if detect:
        warped = detect_and_warp(image)
        if warped is None:
            logger.warning("No card boundary found, using the full photo")
        else:
            image = warped

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    stem = Path(image_path).stem

    cv2.imwrite(str(out_dir / f"{stem}_card.png"), image)

    preprocessor = Preprocessor()
    for region in DEFAULT_REGIONS:
        binary = preprocessor.process(image, region)
        region_path = out_dir / f"{stem}_{region.name}.png"
        cv2.imwrite(str(region_path), binary)
        logger.info(f"Saved {region.name} region ({binary.shape[1]}x{binary.shape[0]}) to {region_path}")


@cli.command('import-catalog')
@click.argument('catalog_json', type=click.Path(exists=True))
@click.option('--database', 'database_path', type=click.Path(), default=None, help='SQLite file (default: DATABASE_PATH)')
@click.option('--replace', is_flag=True, help='Delete existing catalog rows first')
def import_catalog(catalog_json, database_path, replace):
    """Load a catalog JSON file into the SQLite catalog database."""
    from cardscan.config import DATABASE_PATH
    from cardscan.catalog.loader import load_catalog_json
    from cardscan.database.schema import make_session_factory, init_db
    from cardscan.database.db import import_catalog_records

    database_path = Path(database_path) if database_path else DATABASE_PATH
    database_path.parent.mkdir(parents=True, exist_ok=True)

    catalog = load_catalog_json(catalog_json)

    engine, SessionLocal = make_session_factory(database_path)
    init_db(engine)
    db = SessionLocal()
    try:
        count = import_catalog_records(db, catalog, replace=replace)
    finally:
        db.close()
        engine.dispose()

    logger.info(f"Imported {count} cards into {database_path}")


if __name__ == '__main__':
    cli()
