#!/usr/bin/env python3
"""
run_demo.py: one-command demo entry point.

Usage:
  python run_demo.py                      # Submit to %%TEST%% (no network)
  python run_demo.py --live               # Start the supplier stub and POST to it
  python run_demo.py --url <url>          # POST to any cXML endpoint
  python run_demo.py --only order         # Just the purchase order

This script:
1. Builds the sample order and invoice from sample_data/*.json
2. Prints the rendered cXML
3. Submits each document and prints the response summary
4. Shuts down the supplier stub when it started one
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import httpx
from dotenv import load_dotenv

from cxml_outbound.constants import TEST_URL
from cxml_outbound.document import CxmlDocument
from cxml_outbound.invoice import InvoiceRequest
from cxml_outbound.order import OrderRequest
from cxml_outbound.telemetry import init_telemetry

load_dotenv()

# Defaults
SAMPLE_DIR = Path(__file__).resolve().parent / "sample_data"
STUB_HOST = "127.0.0.1"
STUB_PORT = int(os.getenv("STUB_PORT", "8002"))
STUB_URL = os.getenv("STUB_URL", f"http://{STUB_HOST}:{STUB_PORT}")

SEP = "--------------------------------------------------"


# ============================================================
# Supplier stub lifecycle
# ============================================================


def start_supplier_stub() -> subprocess.Popen:
    """Launch the supplier stub FastAPI app as a subprocess."""
    proc = subprocess.Popen(
        [
            sys.executable,
            "-m",
            "uvicorn",
            "supplier_stub.main:app",
            "--host",
            STUB_HOST,
            "--port",
            str(STUB_PORT),
            "--log-level",
            "warning",
        ],
        env=os.environ.copy(),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    return proc


def wait_for_stub(timeout: float = 15.0) -> bool:
    """Block until stub /health responds or timeout."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        try:
            r = httpx.get(f"{STUB_URL}/health", timeout=2.0)
            if r.status_code == 200:
                return True
        except (httpx.ConnectError, httpx.ReadError):
            pass
        time.sleep(0.3)
    return False


def stop_process(proc: subprocess.Popen) -> None:
    """Gracefully stop a subprocess."""
    if proc.poll() is None:
        if sys.platform == "win32":
            proc.terminate()
        else:
            proc.send_signal(signal.SIGTERM)
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()


# ============================================================
# Document builders
# ============================================================


def load_sample(name: str) -> dict:
    with open(SAMPLE_DIR / name, encoding="utf-8") as fh:
        return json.load(fh)


def build_order(data: dict) -> OrderRequest:
    order = OrderRequest(data["order_id"], data.get("order_date"))
    order.set_header(data["header"])
    order.add_items(data["items"])
    order.set_billing_info(data["billing"])
    order.set_shipping_info(data["shipping"])
    return order


def build_invoice(data: dict) -> InvoiceRequest:
    invoice = InvoiceRequest(data["payload_id"])
    invoice.set_header(data["header"])
    invoice.set_request_header(data["request_header"])
    invoice.add_contacts(data["contacts"])
    invoice.add_items(data["items"])
    invoice.add_item_taxes(data["item_taxes"])
    invoice.add_distributions(data["distributions"])
    invoice.add_summary(data["summary"])
    for tax in data["summary_taxes"]:
        invoice.add_summary_tax(tax)
    return invoice


# ============================================================
# Formatted output
# ============================================================


async def submit_and_print(document: CxmlDocument, url: str, show_xml: bool) -> None:
    print()
    print(SEP)
    print(f"\U0001f4c4 {document.message_type.value}")
    print(SEP)
    print(f"Payload ID: {document.payload_id}")
    print(f"Destination: {url}")

    document.on("sending", lambda body: print(f"→ Sending {len(body)} bytes"))
    document.on("received", lambda body: print(f"← Received {len(body)} bytes"))

    # Totals are derived at submit time; render after it so they show up
    response = await document.submit(url)

    if show_xml:
        print()
        print(document.render(pretty=True))

    print(SEP)
    print("\U0001f4e8 RESPONSE")
    print(SEP)
    print(f"HTTP status: {response.status_code if response.status_code is not None else 'n/a (test)'}")
    print(f"Test shortcut: {'yes' if response.is_test else 'no'}")
    if response.is_empty:
        print("Body: (empty)")
    else:
        print(response.body.strip())


# ============================================================
# Main
# ============================================================


async def run(url: str, only: str | None, show_xml: bool) -> None:
    if only in (None, "order"):
        await submit_and_print(build_order(load_sample("sample_order.json")), url, show_xml)
    if only in (None, "invoice"):
        await submit_and_print(build_invoice(load_sample("sample_invoice.json")), url, show_xml)
    print()
    print("Demo complete.")
    print(SEP)


def main() -> None:
    parser = argparse.ArgumentParser(description="cXML outbound OrderRequest / InvoiceDetailRequest demo")
    parser.add_argument(
        "--live",
        action="store_true",
        help="Start the local supplier stub and POST to it instead of %%%%TEST%%%%",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Destination URL (overrides --live)",
    )
    parser.add_argument(
        "--only",
        choices=["order", "invoice"],
        default=None,
        help="Submit just one of the two sample documents",
    )
    parser.add_argument(
        "--no-xml",
        action="store_true",
        help="Do not print the rendered cXML",
    )

    args = parser.parse_args()

    # Suppress noisy logs for clean demo output
    logging.basicConfig(level=logging.WARNING)
    init_telemetry()

    stub_proc = None
    url = args.url or TEST_URL

    try:
        if args.live and not args.url:
            stub_proc = start_supplier_stub()
            if not wait_for_stub():
                print("ERROR: Supplier stub failed to start.", file=sys.stderr)
                stop_process(stub_proc)
                sys.exit(1)
            url = f"{STUB_URL}/cxml"

        asyncio.run(run(url, args.only, show_xml=not args.no_xml))

    except KeyboardInterrupt:
        print("\nInterrupted.")
    except Exception as exc:
        print(f"\nERROR: {type(exc).__name__}: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        if stub_proc:
            stop_process(stub_proc)


if __name__ == "__main__":
    main()
