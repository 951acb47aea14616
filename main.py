# main.py
import os
import argparse
from pathlib import Path
from dotenv import load_dotenv

from browsers import CREDENTIALS, make_browser_service
from models import BATCH_SIZE, DEFAULT_INPUT_CSV, DEFAULT_OUTPUT_CSV, EnrichConfig
from workflow import Workflow

PROJECT_ROOT = Path(__file__).resolve().parent


def ensure_api_key(backend: str) -> str:
    """Return the credential the backend needs, or fail before any remote work."""
    if backend not in CREDENTIALS:
        raise ValueError(f"Unknown browser backend: {backend!r} (expected one of {sorted(CREDENTIALS)})")
    name = CREDENTIALS[backend]
    api_key = os.getenv(name)
    if not api_key:
        raise RuntimeError(f"{name} is not set")
    return api_key


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Enrich a profiles CSV with LinkedIn profile URLs")
    parser.add_argument("--input-csv", type=str, help="Input CSV (email,first_name,last_name)")
    parser.add_argument("--output-csv", type=str, help="Output CSV path")
    parser.add_argument("--batch-size", type=int, help="Profiles per browser session (1 = all in parallel)")
    parser.add_argument("--backend", type=str, choices=sorted(CREDENTIALS))
    parser.add_argument("--browser", type=str, choices=["chromium", "firefox", "webkit"])
    parser.add_argument("--model", type=str, help="Gemini model for the playwright backend")
    parser.add_argument("--found-only", action="store_true", help="Only write rows with a LinkedIn profile URL")
    return parser.parse_args(argv)


def build_config(args) -> EnrichConfig:
    # prefer CLI > ENV > defaults
    input_csv = args.input_csv or os.getenv("INPUT_CSV") or str(PROJECT_ROOT / DEFAULT_INPUT_CSV)
    output_csv = args.output_csv or os.getenv("OUTPUT_CSV") or str(PROJECT_ROOT / DEFAULT_OUTPUT_CSV)

    batch_env = os.getenv("BATCH_SIZE")
    batch_size = args.batch_size if args.batch_size is not None else (int(batch_env) if batch_env else BATCH_SIZE)

    return EnrichConfig(
        input_csv=input_csv,
        output_csv=output_csv,
        batch_size=batch_size,
        backend=args.backend or os.getenv("BROWSER_BACKEND", "airtop"),
        browser=args.browser or os.getenv("BROWSER", "chromium"),
        model=args.model or os.getenv("LLM_MODEL", "gemini-2.5-flash"),
        found_only=args.found_only or _env_flag("FOUND_ONLY"),
    )


def main(argv=None):
    load_dotenv()
    cfg = build_config(parse_args(argv))
    api_key = ensure_api_key(cfg.backend)

    workflow = Workflow(make_browser_service(cfg, api_key))
    state = workflow.run(cfg)

    print(f"✅ Done. {len(state['results'])} of {len(state['profiles'])} profiles saved to: {state['saved']}")
    return state


if __name__ == "__main__":
    main()
