#!/usr/bin/env python3
"""
Daily fact page updater using the Gemini generateContent API.
Fetches a short generated fact, drops it into the page's content region,
refreshes the "last updated" stamp, and writes the page back in place.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from zoneinfo import ZoneInfo
import requests
from dotenv import load_dotenv

from injector import InjectionResult, inject

# =========================
# Config
# =========================
GEMINI_MODEL = "gemini-2.0-flash"
GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
API_GENERATE = "{base}/models/{model}:generateContent"

FACT_TEMPERATURE = 0.7
FACT_MAX_TOKENS = 200
FACT_TIMEOUT = 30.0

PAGE_PROMPT = ("Generate a new, interesting, and concise fact about space, formatted as a single "
               "paragraph. Make it engaging and easy to understand.")
ENDPOINT_PROMPT = ("Generate a short, interesting, and random scientific or historical fact. "
                   "Keep it concise, ideally under 2 sentences.")

PAGE_PATH = "public/index.html"
LOCAL_TZ = "America/Chicago"

SHAPE_ERROR_TEXT = "Failed to generate AI content. Please check the API response structure."

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s: %(message)s")


class ConfigError(ValueError):
    """An environment setting could not be parsed."""


def _env_number(env: Dict[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        logging.error(f"Invalid {name}={raw!r}: expected {cast.__name__}")
        raise ConfigError(f"invalid {name}: {raw!r}") from None


@dataclass
class Settings:
    api_key: str = ""
    model: str = GEMINI_MODEL
    api_base: str = GEMINI_API_BASE
    temperature: float = FACT_TEMPERATURE
    max_output_tokens: int = FACT_MAX_TOKENS
    timeout: float = FACT_TIMEOUT
    page_prompt: str = PAGE_PROMPT
    endpoint_prompt: str = ENDPOINT_PROMPT
    page_path: str = PAGE_PATH
    timezone: str = LOCAL_TZ

    @classmethod
    def from_env(cls, env: Optional[Dict[str, str]] = None) -> "Settings":
        """Build settings from the environment (after loading .env when env is not given)."""
        if env is None:
            load_dotenv()
            env = dict(os.environ)
        return cls(
            api_key=env.get("GEMINI_API_KEY", ""),
            model=env.get("GEMINI_MODEL", GEMINI_MODEL),
            api_base=env.get("GEMINI_API_BASE", GEMINI_API_BASE).rstrip("/"),
            temperature=_env_number(env, "FACT_TEMPERATURE", FACT_TEMPERATURE, float),
            max_output_tokens=_env_number(env, "FACT_MAX_TOKENS", FACT_MAX_TOKENS, int),
            timeout=_env_number(env, "FACT_TIMEOUT", FACT_TIMEOUT, float),
            page_path=env.get("PAGE_PATH", PAGE_PATH),
            timezone=env.get("LOCAL_TZ", LOCAL_TZ),
        )

    def now(self) -> datetime:
        return datetime.now(tz=ZoneInfo(self.timezone))


# =========================
# Fact provider
# =========================
class FactError(RuntimeError):
    """The provider call failed or came back in an unexpected shape."""


class FactShapeError(FactError):
    pass


def build_payload(prompt: str, temperature: float, max_output_tokens: int) -> Dict[str, Any]:
    return {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": {
            "temperature": temperature,
            "maxOutputTokens": max_output_tokens,
        },
    }


def extract_text(result: Any) -> str:
    """First text part of the first candidate; FactShapeError for anything else."""
    try:
        text = result["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        raise FactShapeError("unexpected response structure") from None
    if not isinstance(text, str):
        raise FactShapeError("candidate text is not a string")
    return text.strip()


class FactClient:
    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "daily-fact/1.0",
            "Content-Type": "application/json",
        })

    @property
    def url(self) -> str:
        return API_GENERATE.format(base=self.settings.api_base, model=self.settings.model)

    def generate(self, prompt: str) -> str:
        cfg = self.settings
        payload = build_payload(prompt, cfg.temperature, cfg.max_output_tokens)
        try:
            r = self.session.post(self.url, params={"key": cfg.api_key}, json=payload, timeout=cfg.timeout)
        except requests.RequestException as e:
            raise FactError(f"request failed: {e}") from e

        if not r.ok:
            raise FactError(f"API call failed with status {r.status_code}: {r.text}")

        try:
            result = r.json()
        except ValueError as e:
            raise FactShapeError("response is not JSON") from e

        try:
            return extract_text(result)
        except FactShapeError:
            logging.warning(f"Unexpected API response structure: {str(result)[:500]}")
            raise


def acquire_fact(client, prompt: str) -> str:
    """Best-effort: the generated fact, or a readable error string in its place."""
    logging.info("Fetching new AI content...")
    try:
        text = client.generate(prompt)
    except FactShapeError:
        return SHAPE_ERROR_TEXT
    except FactError as e:
        logging.warning(f"Error generating AI content: {e}")
        return f"Error: {e}. Could not retrieve new AI content."
    logging.info("AI content generated successfully.")
    return text


# =========================
# Page update
# =========================
def update_page(page_path, client, settings: Settings, now: Optional[datetime] = None,
                write: bool = True) -> Optional[InjectionResult]:
    path = Path(page_path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            html = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logging.error(f"Error reading {path}: {e}")
        return None
    logging.info(f"Read {path} successfully.")

    fact = acquire_fact(client, settings.page_prompt)
    result = inject(html, fact, now or settings.now())
    if result.used_fallback:
        logging.warning(f"Content region missing in {path}; used fallback ({result.content_path.value}).")
    else:
        logging.info(f"Injected new AI content into {path}.")
    if result.timestamp_updated:
        logging.info(f"Updated timestamp in {path}.")

    if not write:
        return result

    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(result.html)
    except OSError as e:
        logging.error(f"Error writing updated {path}: {e}")
        return None
    logging.info(f"{path} updated successfully.")
    return result


# =========================
# CLI / Main
# =========================
def parse_args(argv=None):
    import argparse
    ap = argparse.ArgumentParser(description="Fetch a new AI fact and write it into the static page")
    ap.add_argument("--page", default=None, help="HTML page to update (default: $PAGE_PATH or public/index.html)")
    ap.add_argument("--dry-run", dest="dry_run", action="store_true",
                    help="Print the updated page instead of writing it")
    return ap.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        settings = Settings.from_env()
    except ConfigError:
        return 1
    page = args.page or settings.page_path
    if not settings.api_key:
        logging.warning("GEMINI_API_KEY is not set; the page will get an error message instead of a fact.")

    result = update_page(page, FactClient(settings), settings, write=not args.dry_run)
    if result is None:
        return 1
    if args.dry_run:
        print(result.html)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
