import logging
import time
from typing import Any, Dict

logger = logging.getLogger(__name__)


class SyncProgressTracker:
    """Tracker para el progreso de la sincronización de una tienda con ETA."""

    def __init__(self, total_items: int, shop_name: str, log_interval_seconds: float = 30):
        self.total_items = total_items
        self.shop_name = shop_name
        self.log_interval_seconds = log_interval_seconds
        self.processed_items = 0
        self.start_time = time.time()
        self.last_log_time = self.start_time
        self.stats = {"synced": 0, "skipped": 0, "errors": 0}

    def update(self, synced: int = 0, skipped: int = 0, errors: int = 0):
        """Registra un pedido procesado."""
        self.processed_items += 1
        self.stats["synced"] += synced
        self.stats["skipped"] += skipped
        self.stats["errors"] += errors

    def get_progress_info(self) -> Dict[str, Any]:
        """Obtiene información completa del progreso."""
        elapsed = time.time() - self.start_time

        if self.processed_items == 0 or self.total_items == 0:
            return {
                "percentage": 0.0,
                "eta_seconds": 0,
                "rate_per_minute": 0.0,
                "elapsed_str": "00:00:00",
                "eta_str": "00:00:00",
                "processed": self.processed_items,
                "total": self.total_items,
            }

        percentage = (self.processed_items / self.total_items) * 100
        rate_per_minute = (self.processed_items / elapsed) * 60 if elapsed > 0 else 0

        remaining_items = self.total_items - self.processed_items
        eta_seconds = (remaining_items / rate_per_minute) * 60 if rate_per_minute > 0 else 0

        return {
            "percentage": percentage,
            "eta_seconds": eta_seconds,
            "rate_per_minute": rate_per_minute,
            "elapsed_str": self._format_duration(elapsed),
            "eta_str": self._format_duration(eta_seconds),
            "processed": self.processed_items,
            "total": self.total_items,
        }

    def progress_message(self) -> str:
        """Línea de progreso publicada tras cada pedido."""
        return (
            f"Progress for shop '{self.shop_name}': {self.processed_items}/{self.total_items} "
            f"(synced: {self.stats['synced']}, skipped: {self.stats['skipped']}, errors: {self.stats['errors']})"
        )

    def should_log_progress(self, force: bool = False) -> bool:
        """Determina si debe hacer log del detalle (cada 10 pedidos, al final o cada 30 segundos)."""
        current_time = time.time()

        count_milestone = self.processed_items % 10 == 0
        finished = self.processed_items >= self.total_items
        time_milestone = (current_time - self.last_log_time) >= self.log_interval_seconds

        if force or count_milestone or finished or time_milestone:
            self.last_log_time = current_time
            return True
        return False

    def log_progress(self):
        """Hace log del progreso con ETA y ritmo."""
        info = self.get_progress_info()

        logger.info(
            f"📊 Shop '{self.shop_name}': "
            f"{info['processed']}/{info['total']} ({info['percentage']:.1f}%) | "
            f"⏱️ {info['elapsed_str']} elapsed, ETA: {info['eta_str']} | "
            f"⚡ {info['rate_per_minute']:.1f}/min | "
            f"✅ {self.stats['synced']} synced, "
            f"⏭️ {self.stats['skipped']} skipped, "
            f"❌ {self.stats['errors']} errors"
        )

    @staticmethod
    def _format_duration(seconds: float) -> str:
        """Formatea duración en formato HH:MM:SS."""
        if seconds < 0:
            return "00:00:00"
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        secs = int(seconds % 60)
        return f"{hours:02d}:{minutes:02d}:{secs:02d}"
