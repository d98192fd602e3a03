# export_documents.py
import argparse
from pathlib import Path

from config import Config
from editor import JsonFileStore, load_document, recent_ids
from pdf_service import write_pdf


def main(argv=None):
    parser = argparse.ArgumentParser(description="Export saved documents to PDF.")
    parser.add_argument("--store", type=str, default=Config.DOCUMENT_STORE_PATH,
                        help="JSON key-value store (a localStorage dump).")
    parser.add_argument("--id", dest="doc_ids", action="append", default=[],
                        help="Document id to export (repeatable). Defaults to the recent list.")
    parser.add_argument("--out", type=str, default=Config.EXPORTS_DIR, help="Output directory.")
    args = parser.parse_args(argv)

    store_path = Path(args.store)
    if not store_path.exists():
        raise SystemExit(f"Store not found: {store_path}")

    store = JsonFileStore(store_path)
    doc_ids = args.doc_ids or recent_ids(store)

    if not doc_ids:
        print("No documents found in the store.")
        return 0

    total = len(doc_ids)
    generated = 0
    missing = 0
    failed = 0

    for i, doc_id in enumerate(doc_ids, start=1):
        try:
            record = load_document(store, doc_id)
            if record is None:
                missing += 1
                print(f"[{i}/{total}] SKIP  {doc_id} (not saved)")
                continue

            path = write_pdf(record, doc_id, args.out)
            generated += 1
            print(f"[{i}/{total}] DONE  {doc_id} -> {path}")

        except Exception as e:
            failed += 1
            print(f"[{i}/{total}] FAIL  {doc_id}  ({e})")

    print("\nPDF export complete.")
    print(f"Generated: {generated}")
    print(f"Skipped:   {missing}")
    print(f"Failed:    {failed}")
    print(f"Exports:   {args.out}")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
