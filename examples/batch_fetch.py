#!/usr/bin/env python3
"""
Example: Batch fetch PubMed articles with progress tracking.

This demonstrates:
- Searching for a large set of articles
- Batch fetching with automatic chunking
- Progress feedback during long operations
- Sharing one rate limit across both requests

Usage:
    python batch_fetch.py
"""

import logging
from ncbi_services.entrez import EntrezClient
from ncbi_services.params import EntrezParameters

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)


def progress_callback(current, total):
    """Display progress bar."""
    pct = (current / total) * 100
    bar_length = 40
    filled = int(bar_length * current / total)
    bar = "=" * filled + "-" * (bar_length - filled)
    print(f"\r[{bar}] {current}/{total} batches ({pct:.1f}%)", end="", flush=True)


def main():
    with EntrezClient(tool="batch-fetch-example", email="your.email@example.com") as client:

        print("Searching for 'ocean microbiome' articles...")
        results = client.search(
            "pubmed",
            "ocean microbiome[Title/Abstract]",
            EntrezParameters(retmax=250, sort="pub_date"),
        )

        print(f"Found {results.count:,} total articles")
        print(f"Retrieved {len(results.idlist)} IDs for fetching\n")

        if not results.idlist:
            print("No results to fetch.")
            return

        print("Fetching article abstracts in batches...")

        batches = client.fetch_batch(
            "pubmed",
            results.idlist,
            batch_size=50,  # 50 articles per batch
            params=EntrezParameters(rettype="abstract", retmode="xml"),
            progress_callback=progress_callback,
        )

        print("\n\nFetch complete!")
        print(f"Retrieved {len(batches)} batches")

        # Show total size
        total_size = sum(len(batch) for batch in batches)
        print(f"Total data: {total_size:,} bytes ({total_size / 1024:.1f} KB)")


if __name__ == "__main__":
    main()
