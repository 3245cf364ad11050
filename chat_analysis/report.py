"""CSV report sink: one row per analyzed chat, fixed 16-column layout."""

import csv
import logging
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from .models import OutputRow

logger = logging.getLogger(__name__)

# (OutputRow field, column title) in report order
REPORT_COLUMNS: List[Tuple[str, str]] = [
    ("chat_id", "ID do Chat"),
    ("created_at", "Criado em"),
    ("attended_at", "Atendido em"),
    ("closed_at", "Finalizado em"),
    ("client_id", "ID do Cliente"),
    ("client_name", "Nome do Cliente"),
    ("email", "Email"),
    ("phone_number", "Telefone"),
    ("cnpj", "CNPJ"),
    ("certificate_type", "Certificado Digital"),
    ("issuer", "Emissor"),
    ("agent", "Atendente"),
    ("keywords", "Palavras-Chave"),
    ("resolved", "Resolvido (Sim/Não)"),
    ("sentiment", "Sentimento (Positivo/Negativo/Neutro)"),
    ("analysis", "Análise"),
]


def write_report(rows: Iterable[OutputRow], path: Union[str, Path]) -> int:
    """
    Write rows to a CSV file, replacing any existing file.

    The header is always written, so an empty run still yields a valid
    (header-only) report.

    Returns:
        Number of data rows written
    """
    path = Path(path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)

    titles = [title for _, title in REPORT_COLUMNS]
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=titles)
        writer.writeheader()
        for row in rows:
            data = row.model_dump()
            writer.writerow({title: data[field] for field, title in REPORT_COLUMNS})
            count += 1

    logger.info(f"Wrote {count} rows to {path}")
    return count


class CsvReportSink:
    """Callable sink bound to a report path."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __call__(self, rows: List[OutputRow]) -> int:
        return write_report(rows, self.path)
