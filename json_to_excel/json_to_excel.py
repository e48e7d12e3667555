#!/usr/bin/env python3
"""
json_to_excel.py

Convierte todos los archivos JSON de una carpeta en archivos Excel (.xlsx),
una hoja por archivo con una fila por registro y una columna por campo.

Funcionalidad:
- Busca los archivos *.json de la carpeta indicada (sin subcarpetas)
- Localiza el array de registros: la raíz si ya es un array, el campo "data"
  por defecto, o un campo alternativo indicado por el usuario
- Guarda una copia limpia (solo el array de registros) en <carpeta>/CleanJson
- Aplana cada registro: objetos anidados con "." y posiciones de arrays con [n]
  (cliente.direccion.ciudad, items[0].sku, tags[2])
- Ordena las columnas por estructura: items[2] antes que items[10] y cada
  campo padre antes que sus hijos
- Celdas vacías para los campos que un registro no tiene
- Procesa varios archivos en paralelo (ThreadPoolExecutor, 4 workers por defecto)
- Un error en un archivo no detiene el resto; se informa en el resumen final

Archivos generados:
- <carpeta>/<nombre>.xlsx (hoja "JSON Data")
- <carpeta>/CleanJson/<nombre>.json
- <nombre>.csv con --csv, y un reporte Markdown con --report

Ejecución:
    # Conversión básica (pregunta por los archivos sin campo "data")
    python3 json_to_excel.py ./exports

    # Sin preguntas: los archivos sin "data" usan el campo "items"
    python3 json_to_excel.py ./exports --field items --no-input

    # Archivos ya limpios, 8 workers, CSV adicional y reporte
    python3 json_to_excel.py ./exports --root --workers 8 --csv --report resumen.md

Configuración (.env un nivel arriba, o variables de entorno):
    JSON_TO_EXCEL_DATA_FIELD, JSON_TO_EXCEL_WORKERS,
    JSON_TO_EXCEL_CLEAN_DIR, JSON_TO_EXCEL_SHEET_NAME
"""

import argparse
import json
import logging
import os
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from conversion_progress import (STAGE_CLEAN, STAGE_PARSE, STAGE_PREPARE, STAGE_WRITE,
                                 ConsoleProgress, ProgressCallback, emit)
from converter_config import ConfigError, ConverterConfig
from header_order import collect_headers, order_headers
from record_resolver import (RecordResolutionError, RecordSource, find_record_array,
                             needs_source, prompt_record_source, resolve_records)
from row_flattener import flatten_records
from table_builder import iter_table_rows
from xlsx_writer import WorkbookWriteError, write_csv, write_xlsx

logger = logging.getLogger(__name__)


class ConversionError(Exception):
    """Fatal error that stops the whole run (bad folder, no files)."""
    pass


@dataclass
class DocumentResult:
    file_name: str
    ok: bool
    rows: int = 0
    columns: int = 0
    output_path: Optional[str] = None
    error: Optional[str] = None


@dataclass
class ConvertOptions:
    output_dir: Optional[Path] = None
    write_csv: bool = False


# ── Discovery ─────────────────────────────────────────────────────────

def find_json_files(folder: Path) -> List[Path]:
    """JSON files directly inside ``folder``, sorted by name."""
    if not folder.exists():
        raise ConversionError(f"La carpeta no existe: {folder}")
    if not folder.is_dir():
        raise ConversionError(f"La ruta no es una carpeta: {folder}")
    return sorted(
        (p for p in folder.iterdir() if p.is_file() and p.suffix.lower() == '.json'),
        key=lambda p: p.name,
    )


def load_json(path: Path) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


# ── Phase 1: record sources ───────────────────────────────────────────

def plan_sources(files: List[Path], config: ConverterConfig, use_root: bool = False,
                 interactive: bool = True, fallback_field: Optional[str] = None,
                 input_fn: Callable[[str], str] = input) -> Tuple[Dict[str, RecordSource], List[DocumentResult]]:
    """Decide where the records of each file are before any worker starts.

    Files without the default field try ``fallback_field`` first, then the
    root (``use_root``), then the prompt. Files that cannot be read, or whose
    source cannot be decided, are returned as failed results and left out of
    the plan.
    """
    default = RecordSource(field=config.data_field)
    plan: Dict[str, RecordSource] = {}
    failed: List[DocumentResult] = []

    for path in files:
        try:
            document = load_json(path)
        except (OSError, ValueError) as e:
            logger.error(f"❌ Error al leer el archivo {path.name}: {e}")
            failed.append(DocumentResult(path.name, ok=False, error=f"Lectura: {e}"))
            continue

        if not needs_source(document, config.data_field):
            plan[path.name] = default
        elif fallback_field and find_record_array(document, fallback_field) is not None:
            plan[path.name] = RecordSource(field=fallback_field)
        elif use_root:
            plan[path.name] = RecordSource.root()
        elif interactive:
            try:
                plan[path.name] = prompt_record_source(path.name, config.data_field, input_fn)
            except RecordResolutionError as e:
                logger.error(f"❌ {e}")
                failed.append(DocumentResult(path.name, ok=False, error=str(e)))
        else:
            message = f'Sin array "{config.data_field}" y sin campo alternativo'
            logger.error(f"❌ {path.name}: {message}")
            failed.append(DocumentResult(path.name, ok=False, error=message))

        if path.name in plan:
            logger.debug(f"  {path.name}: registros en {plan[path.name].describe()}")

    return plan, failed


# ── Phase 2: per-document conversion ──────────────────────────────────

def convert_document(path: Path, source: RecordSource, clean_dir: Path, config: ConverterConfig,
                     options: ConvertOptions,
                     on_progress: Optional[ProgressCallback] = None) -> DocumentResult:
    """Convert one JSON file; every failure is captured in the result."""
    name = path.name
    try:
        emit(on_progress, name, STAGE_CLEAN, 0)
        document = load_json(path)
        records = resolve_records(document, source, config.data_field)
        with open(clean_dir / name, 'w', encoding='utf-8') as f:
            json.dump(records, f, indent=4, ensure_ascii=False)
        emit(on_progress, name, STAGE_CLEAN, 100)

        emit(on_progress, name, STAGE_PARSE, 0)
        rows = flatten_records(records)
        emit(on_progress, name, STAGE_PARSE, 100)

        emit(on_progress, name, STAGE_PREPARE, 0)
        headers = order_headers(collect_headers(rows))
        emit(on_progress, name, STAGE_PREPARE, 100)

        out_dir = options.output_dir or path.parent
        xlsx_path = out_dir / (path.stem + '.xlsx')
        total = len(rows)

        def on_row(number: int) -> None:
            emit(on_progress, name, STAGE_WRITE, number * 100 // total)

        emit(on_progress, name, STAGE_WRITE, 0)
        write_xlsx(str(xlsx_path), headers, iter_table_rows(headers, rows), total,
                   sheet_name=config.sheet_name, on_row=on_row)
        if options.write_csv:
            write_csv(str(out_dir / (path.stem + '.csv')), headers, iter_table_rows(headers, rows))
        emit(on_progress, name, STAGE_WRITE, 100)

        logger.debug(f"  {name}: {total} filas, {len(headers)} columnas")
        return DocumentResult(name, ok=True, rows=total, columns=len(headers), output_path=str(xlsx_path))

    except RecordResolutionError as e:
        return DocumentResult(name, ok=False, error=str(e))
    except (OSError, ValueError, WorkbookWriteError) as e:
        return DocumentResult(name, ok=False, error=f"{type(e).__name__}: {e}")


def convert_all(files: List[Path], plan: Dict[str, RecordSource], clean_dir: Path,
                config: ConverterConfig, options: ConvertOptions,
                on_progress: Optional[ProgressCallback] = None) -> List[DocumentResult]:
    results: List[DocumentResult] = []
    with ThreadPoolExecutor(max_workers=config.workers) as executor:
        futures = {
            executor.submit(convert_document, path, plan[path.name], clean_dir,
                            config, options, on_progress): path.name
            for path in files if path.name in plan
        }
        for future in as_completed(futures):
            name = futures[future]
            try:
                result = future.result()
            except Exception as e:
                logger.exception(f"[WARN] Error inesperado en {name}")
                result = DocumentResult(name, ok=False, error=f"{type(e).__name__}: {e}")

            if result.ok:
                logger.info(f"✅ Datos del archivo {name} guardados en {result.output_path}")
            else:
                logger.error(f"❌ Error al procesar el archivo {name}: {result.error}")
            results.append(result)
    return results


def run(folder: Path, config: ConverterConfig, options: ConvertOptions, use_root: bool = False,
        interactive: bool = True, fallback_field: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        input_fn: Callable[[str], str] = input) -> List[DocumentResult]:
    """Convert every JSON file in ``folder``; returns one result per file."""
    files = find_json_files(folder)
    if not files:
        raise ConversionError(f"No hay archivos JSON en la carpeta: {folder}")
    logger.info(f"Archivos encontrados: {len(files)}")

    clean_dir = folder / config.clean_dir_name
    clean_dir.mkdir(parents=True, exist_ok=True)
    if options.output_dir is not None:
        options.output_dir.mkdir(parents=True, exist_ok=True)

    plan, failed = plan_sources(files, config, use_root=use_root, interactive=interactive,
                                fallback_field=fallback_field, input_fn=input_fn)
    results = failed + convert_all(files, plan, clean_dir, config, options, on_progress)
    return sorted(results, key=lambda r: r.file_name)


# ── Reporting ─────────────────────────────────────────────────────────

def log_summary(results: List[DocumentResult], elapsed: float) -> None:
    ok = [r for r in results if r.ok]
    sep = '=' * 60
    logger.info(sep)
    logger.info("RESUMEN")
    logger.info(sep)
    logger.info(f"Archivos: {len(results)} | OK: {len(ok)} | Errores: {len(results) - len(ok)}")
    logger.info(f"Filas escritas: {sum(r.rows for r in ok):,}")
    logger.info(f"Tiempo: {elapsed:.1f}s")
    logger.info(sep)


def write_report(results: List[DocumentResult], report_path: str, folder: Path, elapsed: float) -> None:
    """Markdown summary with one table row per file."""
    ok_count = sum(1 for r in results if r.ok)
    with open(report_path, 'w', encoding='utf-8') as f:
        f.write("# JSON to Excel Report\n\n")
        f.write(f"**Generated:** {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n")
        f.write(f"**Folder:** `{folder}`\n\n")
        f.write("## Results\n\n")
        f.write("| Metric | Count |\n")
        f.write("|--------|-------|\n")
        f.write(f"| Files | {len(results)} |\n")
        f.write(f"| Converted | {ok_count} |\n")
        f.write(f"| Failed | {len(results) - ok_count} |\n")
        f.write(f"| Elapsed Time | {elapsed:.1f}s |\n\n")
        f.write("## Files\n\n")
        f.write("| File | Status | Rows | Columns | Detail |\n")
        f.write("|------|--------|------|---------|--------|\n")
        for r in results:
            status = 'OK' if r.ok else 'ERROR'
            detail = r.output_path if r.ok else (r.error or '')[:120]
            f.write(f"| {r.file_name} | {status} | {r.rows} | {r.columns} | {detail} |\n")


# ── CLI ───────────────────────────────────────────────────────────────

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Convierte una carpeta de archivos JSON en archivos Excel (.xlsx).',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
    python3 json_to_excel.py ./exports
    python3 json_to_excel.py ./exports --field items --no-input
    python3 json_to_excel.py ./exports --root --workers 8 --csv
        """
    )
    parser.add_argument('folder', help='Carpeta con los archivos .json')
    parser.add_argument('--field', help='Campo alternativo para los archivos sin el campo por defecto (data)')
    parser.add_argument('--root', action='store_true',
                        help='Si falta el campo, usar la raíz del documento como datos')
    parser.add_argument('--no-input', action='store_true',
                        help='No preguntar; los archivos sin array de registros se marcan como error')
    parser.add_argument('--workers', type=int, help='Archivos procesados en paralelo (default: 4)')
    parser.add_argument('--output-dir', '-o', help='Carpeta de salida (default: la carpeta de entrada)')
    parser.add_argument('--csv', action='store_true', help='Generar también un .csv por archivo')
    parser.add_argument('--report', help='Ruta de un reporte Markdown con el resumen')
    parser.add_argument('--verbose', '-v', action='store_true', help='Mostrar logs de debug')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='Solo errores y resumen, sin barra de progreso')
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.quiet:
        log_level = logging.WARNING
    elif args.verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    logging.basicConfig(
        level=log_level,
        format='%(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    folder = Path(args.folder.strip()).expanduser()
    logger.debug(f"Ruta indicada: {folder} (longitud {len(str(folder))})")

    try:
        config = ConverterConfig.load_from_env().with_overrides(workers=args.workers)
        options = ConvertOptions(
            output_dir=Path(args.output_dir) if args.output_dir else None,
            write_csv=args.csv,
        )
        interactive = not args.no_input and sys.stdin.isatty()
        progress = None if args.quiet else ConsoleProgress()

        start = time.monotonic()
        results = run(folder, config, options, use_root=args.root, interactive=interactive,
                      fallback_field=args.field, on_progress=progress)
        elapsed = time.monotonic() - start

    except (ConversionError, ConfigError) as e:
        logger.error(f"❌ {e}")
        return 1
    except OSError as e:
        logger.error(f"❌ Error al trabajar con la carpeta: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("\nOperación cancelada por el usuario")
        return 130

    log_summary(results, elapsed)
    if args.report:
        write_report(results, args.report, folder, elapsed)
        logger.info(f"Reporte: {os.path.abspath(args.report)}")

    return 0 if all(r.ok for r in results) else 1


if __name__ == '__main__':
    sys.exit(main())
