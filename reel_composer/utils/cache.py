"""
Almacén en disco de narraciones continuas.
Guarda el audio continuo de cada trabajo junto con una huella de los textos
de escena para detectar cuándo los tiempos quedaron obsoletos.
"""

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

from diskcache import Cache

from ..domain.models import ContinuousAudio

logger = logging.getLogger(__name__)


def scenes_fingerprint(scene_texts: Sequence[str]) -> str:
    """Huella estable de la lista de textos de escena."""
    payload = json.dumps(list(scene_texts), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


class NarrationStore:
    """Cache persistente de ContinuousAudio por trabajo."""

    def __init__(self, cache_dir: str = "./cache", default_ttl_hours: int = 168):
        """
        Inicializa el almacén.

        Args:
            cache_dir: Directorio para el cache
            default_ttl_hours: Tiempo de vida por defecto en horas
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.cache = Cache(str(self.cache_dir))
        self.default_ttl_hours = default_ttl_hours

    def _key(self, job_id: str) -> str:
        return f"narration:{job_id}"

    def save(
        self,
        job_id: str,
        narration: ContinuousAudio,
        scene_texts: Sequence[str],
        ttl_hours: Optional[int] = None,
    ) -> None:
        """
        Guarda la narración de un trabajo.

        Args:
            job_id: Identificador del trabajo
            narration: Audio continuo con tiempos
            scene_texts: Textos con los que se calcularon los tiempos
            ttl_hours: Tiempo de vida (usa default si no se especifica)
        """
        record = {
            "narration": narration.model_dump(mode="json"),
            "fingerprint": scenes_fingerprint(scene_texts),
            "saved_at": datetime.now().isoformat(),
        }
        expire = (ttl_hours or self.default_ttl_hours) * 3600
        self.cache.set(self._key(job_id), record, expire=expire)
        logger.info(f"Narración guardada para trabajo {job_id}")

    def load(self, job_id: str, scene_texts: Sequence[str]) -> Optional[ContinuousAudio]:
        """
        Recupera la narración si sigue correspondiendo a las escenas actuales.

        Returns:
            ContinuousAudio, o None si no existe o está obsoleta
        """
        record = self.cache.get(self._key(job_id))
        if record is None:
            return None
        if record["fingerprint"] != scenes_fingerprint(scene_texts):
            logger.warning(
                f"Narración del trabajo {job_id} obsoleta: el texto de las escenas cambió"
            )
            return None
        return ContinuousAudio.model_validate(record["narration"])

    def is_stale(self, job_id: str, scene_texts: Sequence[str]) -> bool:
        """True si hay narración guardada pero para otros textos."""
        record = self.cache.get(self._key(job_id))
        return record is not None and record["fingerprint"] != scenes_fingerprint(scene_texts)

    def invalidate(self, job_id: str) -> bool:
        """Elimina la narración de un trabajo."""
        return self.cache.delete(self._key(job_id))

    def clear(self) -> None:
        """Limpia todo el cache."""
        self.cache.clear()

    def close(self) -> None:
        """Cierra la conexión al cache."""
        self.cache.close()
