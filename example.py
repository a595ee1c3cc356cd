# example.py
# A small example demonstrating how to use the seo_parity library to
# compare a handful of pages between a production site and its rebuild.

import asyncio
import logging

from seo_parity import CheckSet, compare_sites

# --- Configuration ---
# Enable logging to see every fetch and redirect the comparison makes.
logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

PROD_URL = "https://www.coursebox.ai"
DEV_URL = "https://coursebox-ai.vercel.app"
PATHS = ["/", "/pricing", "/about", "/fr/pricing"]


def show_progress(event):
    if event.type in ("compared", "complete", "error"):
        print(f"  {event.message}")


async def main():
    print(f"[*] Comparing {len(PATHS)} pages: {PROD_URL} vs {DEV_URL}\n")

    outcome = await compare_sites(
        PATHS,
        prod_url=PROD_URL,
        dev_url=DEV_URL,
        checks=CheckSet(og_image=False),
        observer=show_progress,
        batch_delay=0.5,
    )

    if outcome.state != "completed":
        print(f"\nRun ended as {outcome.state}: {outcome.error or ''}")
        return

    print("\n--- Pages needing attention ---")
    for record in outcome.records:
        if record.status != "OK":
            print(f"- [{record.status}] {record.path}: {record.notes_text}")

    s = outcome.summary
    print(f"\nOK: {s.ok}  DIFF: {s.diff}  ERROR: {s.error}  (of {s.total})")


if __name__ == "__main__":
    asyncio.run(main())
