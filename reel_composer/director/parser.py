"""
Parser de Entradas
Valida y convierte JSON (string, lista o dict) en objetos de dominio.
"""
import json
import logging
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from ..domain.models import ContinuousAudio, Scene, Word

logger = logging.getLogger(__name__)

RawInput = Union[str, bytes, List[Any], Dict[str, Any]]


class InputParser:
    """Validador de escenas, palabras transcritas y audio continuo."""

    def _load(self, raw_input: RawInput) -> Any:
        if isinstance(raw_input, (str, bytes)):
            text = raw_input.decode("utf-8") if isinstance(raw_input, bytes) else raw_input
            # Limpiar bloques de código markdown si existen
            clean_input = text.replace("```json", "").replace("```", "").strip()
            try:
                return json.loads(clean_input)
            except json.JSONDecodeError as e:
                logger.error(f"Error decodificando JSON: {e}")
                raise ValueError("La entrada no es un JSON válido") from e
        return raw_input

    def parse_scenes(self, raw_input: RawInput) -> List[Scene]:
        """
        Acepta una lista de textos o de objetos {id, text, imageUrl, voiceUrl},
        o un dict con la clave "scenes".
        """
        data = self._load(raw_input)
        if isinstance(data, dict):
            data = data.get("scenes", [])
        if not isinstance(data, list) or not data:
            raise ValueError("Se esperaba una lista de escenas no vacía")

        scenes = []
        for index, item in enumerate(data):
            if isinstance(item, str):
                item = {"text": item}
            item = {"id": index + 1, **item}
            try:
                scenes.append(Scene.model_validate(item))
            except ValidationError as e:
                raise ValueError(f"Escena {index + 1} inválida: {e}") from e

        self._validate_logic(scenes)
        return scenes

    def parse_words(self, raw_input: RawInput) -> List[Word]:
        """
        Acepta una lista de palabras, un resultado de Whisper ("segments")
        o uno estilo Deepgram ("results.channels[0].alternatives[0].words").
        """
        data = self._load(raw_input)
        if isinstance(data, dict):
            if "segments" in data:
                data = [w for seg in data["segments"] for w in seg.get("words", [])]
            elif "results" in data:
                channels = data["results"].get("channels") or [{}]
                alternatives = channels[0].get("alternatives") or [{}]
                data = alternatives[0].get("words", [])
            else:
                data = data.get("words", [])

        words = []
        for item in data:
            if "word" in item and isinstance(item["word"], str):
                item = {**item, "word": item["word"].strip()}
            words.append(Word.model_validate(item))
        words.sort(key=lambda w: w.start)
        return words

    def parse_continuous(self, raw_input: RawInput) -> ContinuousAudio:
        """Audio continuo {audioUrl, sceneTimings, totalDuration}."""
        data = self._load(raw_input)
        try:
            return ContinuousAudio.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"Audio continuo inválido: {e}") from e

    def _validate_logic(self, scenes: List[Scene]):
        """Reglas de negocio extra."""
        expected_id = 1
        for scene in scenes:
            if scene.id != expected_id:
                logger.warning(f"IDs de escena desordenados. Esperado {expected_id}, encontrado {scene.id}")
            if not scene.text.strip():
                logger.warning(f"La escena {scene.id} no tiene texto")
            expected_id += 1
