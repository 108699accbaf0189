"""
SpeedRead Ollama Integration Service - optional LLM heading oracle
"""
import json
import logging
import math
import re
import httpx
from typing import List, Dict, Any, Optional
from speedread.core.config import settings
from speedread.core.exceptions import HeadingOracleException
from speedread.services.chapter_detector import SectionBreak

logger = logging.getLogger(__name__)

JSON_ARRAY = re.compile(r'\[[\s\S]*?\]')

SECTION_BREAKS_PROMPT = """Find chapter/section headings in this book text. Look for:
- "Chapter 1", "Chapter One", "CHAPTER I"
- "Part 1", "Part One"
- "Prologue", "Epilogue", "Introduction"
- Numbered sections

Each sample shows its character OFFSET. Add the offset to any position you find within that sample.

Return ONLY a JSON array:
[{{"position": ABSOLUTE_POSITION, "title": "Chapter Title"}}]

If no chapters found: []

Text samples:
{samples}"""

class OllamaService:
    """Heading oracle backed by a locally-hosted Ollama model"""

    def __init__(
            self,
            base_url: Optional[str] = None,
            llm_model: Optional[str] = None,
            preferred_models: Optional[List[str]] = None,
            timeout: Optional[float] = None,
            status_timeout: Optional[float] = None,
            sample_size: Optional[int] = None,
            max_samples: Optional[int] = None
    ):
        self.base_url = base_url or settings.OLLAMA_BASE_URL
        self.llm_model = llm_model or settings.OLLAMA_LLM_MODEL
        self.preferred_models = preferred_models if preferred_models is not None else list(settings.OLLAMA_PREFERRED_MODELS)
        self.timeout = timeout or settings.ORACLE_TIMEOUT
        self.status_timeout = status_timeout or settings.ORACLE_STATUS_TIMEOUT
        self.sample_size = sample_size or settings.ORACLE_SAMPLE_SIZE
        self.max_samples = max_samples or settings.ORACLE_MAX_SAMPLES
        logger.info(f"Heading oracle at {self.base_url}, model: {self.llm_model or 'auto'}")

    async def _make_request(
            self,
            endpoint: str,
            data: Dict[str, Any],
            method: str = "POST",
            timeout: Optional[float] = None
    ) -> Dict[str, Any]:
        """
        Make a request to the Ollama API
        Args:
            endpoint: API endpoint to call
            data: Request data
            method: HTTP method (GET, POST)
            timeout: Request timeout in seconds, defaults to the oracle timeout
        Returns:
            Parsed JSON data
        """
        url = f"{self.base_url}{endpoint}"
        timeout = timeout or self.timeout

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                if method.upper() == "POST": response = await client.post(url, json=data)
                else: response = await client.get(url, params=data)

                if response.status_code != 200:
                    error_msg = f"Ollama API error: {response.status_code} - {response.text}"
                    logger.error(error_msg)
                    raise HeadingOracleException(error_msg)

                return response.json()

        except httpx.RequestError as e:
            error_msg = f"Request to Ollama API failed: {str(e)}"
            logger.error(error_msg)
            raise HeadingOracleException(error_msg)
        except ValueError as e:
            raise HeadingOracleException(f"Malformed Ollama API response: {str(e)}")

    async def check_status(self) -> bool:
        """
        Check if Ollama service is running
        Returns:
            True if Ollama is running and responsive
        """
        try:
            await self._make_request("/api/version", {}, method="GET", timeout=self.status_timeout)
            return True
        except HeadingOracleException: return False

    async def list_models(self) -> List[str]:
        """Names of the models installed in Ollama"""
        response = await self._make_request("/api/tags", {}, method="GET", timeout=self.status_timeout)
        return [model["name"] for model in response.get("models", []) if isinstance(model, dict) and model.get("name")]

    async def select_model(self) -> Optional[str]:
        """
        Pick the model used for heading detection
        Returns:
            Configured model, else the first installed preferred model, else the first installed model,
            or None when Ollama has no models
        """
        if self.llm_model: return self.llm_model

        models = await self.list_models()
        if not models:
            logger.info("No models installed in Ollama")
            return None

        for preferred in self.preferred_models:
            for name in models:
                if preferred in name.lower():
                    self.llm_model = name
                    logger.info(f"Using Ollama model: {name}")
                    return name

        self.llm_model = models[0]
        logger.info(f"Using Ollama model: {self.llm_model}")
        return self.llm_model

    async def generate_completion(
            self,
            prompt: str,
            temperature: float = 0.1,
            max_tokens: Optional[int] = 1000
    ) -> str:
        """
        Generate text completion using Ollama LLM
        Args:
            prompt: Input prompt text
            temperature: Temperature for generation (0.0 to 1.0)
            max_tokens: Maximum tokens to generate
        Returns:
            Generated text
        """
        model = await self.select_model()
        if not model: raise HeadingOracleException("No Ollama models available")

        data = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, }
        }
        if max_tokens: data["options"]["num_predict"] = max_tokens

        response = await self._make_request("/api/generate", data)
        return response.get("response", "")

    def build_samples(self, text: str) -> str:
        """Evenly spaced text windows, each labelled with its absolute offset"""
        text_length = len(text)
        num_samples = min(self.max_samples, math.ceil(text_length / 20000))

        samples = []
        for i in range(num_samples):
            offset = (text_length * i) // num_samples
            samples.append(f"=== OFFSET {offset} ===\n{text[offset:offset + self.sample_size]}")

        return "\n\n".join(samples)

    def parse_section_breaks(self, response: str, text_length: int) -> List[SectionBreak]:
        """
        Extract valid section breaks from a model reply
        Args:
            response: Raw model output, expected to contain a JSON array
            text_length: Length of the analysed text
        Returns:
            Breaks with an integer position inside the text and a string title
        """
        match = JSON_ARRAY.search(response)
        if not match: return []

        try:
            entries = json.loads(match.group(0))
        except json.JSONDecodeError:
            logger.warning("Heading oracle returned malformed JSON")
            return []

        breaks = []
        for entry in entries if isinstance(entries, list) else []:
            if not isinstance(entry, dict): continue
            position, title = entry.get("position"), entry.get("title")
            if isinstance(position, bool) or not isinstance(position, int) or not isinstance(title, str): continue
            if not 0 <= position < text_length: continue
            breaks.append(SectionBreak(position=position, title=title))

        return breaks

    async def find_section_breaks(self, text: str) -> Optional[List[SectionBreak]]:
        """
        Ask the model for chapter and section headings
        Args:
            text: Full document text
        Returns:
            Section breaks, or None when the oracle is unavailable or found nothing usable
        """
        if not text: return None

        try:
            prompt = SECTION_BREAKS_PROMPT.format(samples=self.build_samples(text))
            response = await self.generate_completion(prompt)
        except HeadingOracleException as e:
            logger.warning(f"Heading oracle unavailable: {e.detail}")
            return None

        breaks = self.parse_section_breaks(response, len(text))
        logger.info(f"Heading oracle found {len(breaks)} sections")
        return breaks or None

ollama_service = OllamaService(**settings.get_ollama_config())
