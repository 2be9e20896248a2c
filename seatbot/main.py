import asyncio
import argparse
import json
import sys
from datetime import datetime
from dotenv import load_dotenv
from pydantic import ValidationError

# Force unbuffered output
sys.stdout.reconfigure(line_buffering=True)
sys.stderr.reconfigure(line_buffering=True)

from booking import ReservationFlow
from config import (
    COOKIES_PATH, MAX_ZONE_RETRIES, POPUP_TIMEOUT_SECONDS, SessionConfig, gemini_key_missing,
    session_config_from_env,
)


async def main(config: SessionConfig, headless: bool = False, cookies_path: str = COOKIES_PATH,
               hold: bool = True) -> dict:
    if gemini_key_missing():
        print("ERROR: OCR_ENGINE=gemini needs GEMINI_API_KEY", flush=True)
        print("  export GEMINI_API_KEY=your-api-key", flush=True)
        print("  or create a .env file with GEMINI_API_KEY=your-api-key", flush=True)
        sys.exit(1)

    print(f"Starting OneStop Seat Agent", flush=True)
    print(f"Target: {config.url}", flush=True)
    print(f"Date: {config.target_date}  Zones: {', '.join(config.seat_keywords)}", flush=True)
    print(f"Headless: {headless}", flush=True)
    print("-" * 50, flush=True)

    flow = ReservationFlow(
        config,
        popup_timeout=POPUP_TIMEOUT_SECONDS,
        max_zone_retries=MAX_ZONE_RETRIES,
    )
    results = await flow.run(headless=headless, cookies_path=cookies_path)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    results_file = f"results_{timestamp}.json"
    with open(results_file, "w") as f:
        json.dump(results, f, indent=2)
    print(f"\nResults saved to: {results_file}")

    if results["success"]:
        if hold:
            print("\n" + "="*60)
            print("  PAYMENT STEP OPEN - finish the purchase in the browser")
            print("  Press Enter to close browser and exit...")
            print("="*60 + "\n")
            try:
                await asyncio.get_event_loop().run_in_executor(None, input)
            except (EOFError, KeyboardInterrupt):
                pass
        await flow.close()

    return results


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="OneStop Seat Agent")
    parser.add_argument("--url", help="Performance page URL")
    parser.add_argument("--prod-id", help="Product id passed to reservationInit")
    parser.add_argument("--date", help="Date label to click, e.g. 'May 24'")
    parser.add_argument("--lang", help="Language code (EN, KO, ...)")
    parser.add_argument("--zones", help="Comma separated zone keywords, first one preferred")
    parser.add_argument("--cookies", default=COOKIES_PATH, help="Cookie file from login_helper.py")
    parser.add_argument("--headless", action="store_true", help="Run browser in headless mode")
    parser.add_argument("--no-hold", action="store_true", help="Close the browser right after reaching payment")
    return parser.parse_args(argv)


if __name__ == "__main__":
    load_dotenv()
    args = parse_args()
    zones = tuple(z.strip() for z in args.zones.split(",")) if args.zones else None
    try:
        session = session_config_from_env(
            url=args.url,
            prod_id=args.prod_id,
            target_date=args.date,
            lang_cd=args.lang,
            seat_keywords=zones,
        )
    except ValidationError as e:
        print(f"ERROR: invalid session config\n{e}", flush=True)
        sys.exit(1)

    results = asyncio.run(main(session, headless=args.headless, cookies_path=args.cookies,
                               hold=not args.no_hold))
    sys.exit(0 if results["success"] else 2)
