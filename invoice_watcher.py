#!/usr/bin/env python3
"""
Invoice Folder Watcher

Watches a folder for new invoice files and uploads each one to the
invoice automation API. Successfully processed files move to the processed
folder; failures move to the failed folder for a manual retry.

Usage:
    python invoice_watcher.py --watch-folder ./invoices-incoming --api-url http://127.0.0.1:8000
"""

import argparse
import json
import time
from datetime import datetime
from pathlib import Path

import requests
from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

DEFAULT_API_URL = "http://127.0.0.1:8000"
ALLOWED_EXTENSIONS = {".pdf", ".png", ".jpg", ".jpeg", ".tiff", ".bmp"}


class InvoiceHandler(FileSystemEventHandler):
    """Uploads newly created invoice files"""

    def __init__(self, api_url, watch_folder, processed_folder, failed_folder, timeout=120):
        self.api_url = api_url.rstrip("/")
        self.watch_folder = Path(watch_folder)
        self.processed_folder = Path(processed_folder)
        self.failed_folder = Path(failed_folder)
        self.timeout = timeout
        self.seen = set()

        self.processed_folder.mkdir(parents=True, exist_ok=True)
        self.failed_folder.mkdir(parents=True, exist_ok=True)

    def on_created(self, event):
        if event.is_directory:
            return

        file_path = Path(event.src_path)
        if file_path.suffix.lower() not in ALLOWED_EXTENSIONS or file_path in self.seen:
            return

        # Give the writer a moment to finish
        time.sleep(1)
        if not file_path.exists():
            return

        self.seen.add(file_path)
        self.upload(file_path)

    def upload(self, file_path: Path) -> dict | None:
        print(f"\n📄 {file_path.name} ({file_path.stat().st_size:,} bytes)")
        try:
            response = requests.post(
                f"{self.api_url}/upload",
                data=file_path.read_bytes(),
                headers={"X-File-Name": file_path.name, "Content-Type": "application/octet-stream"},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            print("⏱️  Request timed out (document analysis can take 30+ seconds)")
            self.move(file_path, self.failed_folder)
            return None
        except requests.exceptions.RequestException as e:
            print(f"❌ Upload failed: {e}")
            self.move(file_path, self.failed_folder)
            return None

        if response.status_code != 200:
            try:
                error = response.json().get("error", response.text)
            except ValueError:
                error = response.text
            print(f"❌ API returned {response.status_code}: {error}")
            self.move(file_path, self.failed_folder)
            return None

        record = response.json()
        extracted = record.get("extractedData", {})
        classification = record.get("classification", {})
        print(f"   Vendor:   {extracted.get('vendor') or 'Unknown'} ({record.get('vendorId')})")
        print(f"   Total:    {extracted.get('currency')} {extracted.get('totalAmount')}")
        print(f"   Category: {classification.get('category')} ({classification.get('confidence', 0):.0%})")

        dest = self.move(file_path, self.processed_folder)
        self.log(file_path.name, record, dest)
        return record

    def move(self, file_path: Path, folder: Path) -> Path:
        dest = folder / file_path.name
        file_path.rename(dest)
        print(f"📁 Moved to: {dest}")
        return dest

    def log(self, file_name: str, record: dict, dest: Path):
        """Append one JSON line per processed invoice"""
        log_file = self.watch_folder.parent / "processing_log.jsonl"
        entry = {
            "timestamp": datetime.now().isoformat(),
            "file_name": file_name,
            "invoice_id": record.get("id"),
            "vendor_id": record.get("vendorId"),
            "category": record.get("classification", {}).get("category"),
            "confidence": record.get("classification", {}).get("confidence"),
            "destination": str(dest),
        }
        with open(log_file, "a") as f:
            f.write(json.dumps(entry) + "\n")


def main():
    parser = argparse.ArgumentParser(description="Watch a folder and upload new invoices for processing")
    parser.add_argument("--watch-folder", default="./invoices-incoming", help="Folder to watch (default: ./invoices-incoming)")
    parser.add_argument("--processed-folder", default="./invoices-processed", help="Destination for processed files")
    parser.add_argument("--failed-folder", default="./invoices-failed", help="Destination for failed uploads")
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help=f"API base URL (default: {DEFAULT_API_URL})")
    parser.add_argument("--timeout", type=int, default=120, help="Upload timeout in seconds (default: 120)")
    args = parser.parse_args()

    watch_folder = Path(args.watch_folder)
    watch_folder.mkdir(parents=True, exist_ok=True)

    handler = InvoiceHandler(args.api_url, watch_folder, args.processed_folder, args.failed_folder, args.timeout)
    observer = Observer()
    observer.schedule(handler, str(watch_folder), recursive=False)
    observer.start()

    print(f"🔍 Watching {watch_folder.absolute()} → {args.api_url}/upload")
    print("Press Ctrl+C to stop")

    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
    print("✅ Watcher stopped")


if __name__ == "__main__":
    main()
