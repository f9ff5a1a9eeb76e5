"""
Smoke test client for a running HTML Render Service.

Posts a handful of documents to `/render`, checks the answers and saves the
returned PNGs for manual inspection.

Usage:
    python -m html_render_service.smoke [--url URL] [--samples DIR] [--output DIR]

The service URL defaults to $SERVICE_URL, then http://localhost:3000.
"""
import argparse
import io
import json
import os
import sys
from dataclasses import dataclass
from typing import List, Optional

import httpx
from PIL import Image

from html_render_service.core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_SERVICE_URL = "http://localhost:3000"

SIMPLE_HTML = """<html><body style="font-family: sans-serif; padding: 40px;">
<h1>Simple Test</h1><p>A plain document with a heading and a paragraph.</p>
</body></html>"""

COMPLEX_HTML = """<html><head>
<link rel="stylesheet" href="https://fonts.googleapis.com/css2?family=Inter:wght@400;700&display=swap">
<style>
  body { font-family: 'Inter', sans-serif; margin: 0; background: linear-gradient(135deg, #667eea, #764ba2); color: white; }
  .card { margin: 80px; padding: 60px; border-radius: 24px; background: rgba(0, 0, 0, 0.25); }
</style></head>
<body><div class="card"><h1>Complex Test</h1><p>External fonts, gradients and late DOM.</p><div id="late"></div></div>
<script>setTimeout(function () { document.getElementById('late').textContent = 'Inserted by script'; }, 200);</script>
</body></html>"""

JSON_HTML = ('<html><body style="background: #ff6b6b; color: white; padding: 50px; text-align: center;">'
             '<h1>JSON Test</h1><p>This HTML was sent as JSON!</p></body></html>')

INVALID_HTML = "<html><body><h1>Unclosed tag<p>This should still work</body>"


@dataclass
class SmokeOutcome:
    name: str
    success: bool
    size: int = 0
    image: Optional[bytes] = None
    message: str = ""


def _load_sample(samples_dir: Optional[str], filename: str, fallback: str) -> str:
    if samples_dir:
        path = os.path.join(samples_dir, filename)
        if os.path.exists(path):
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        logger.warning(f"Sample '{path}' not found, using the built-in document.")
    return fallback


def check_service(client: httpx.Client) -> bool:
    """True if anything answers a POST to /render within two seconds."""
    try:
        client.post("/render", content=b"", timeout=2.0)
    except httpx.HTTPError:
        return False
    return True


def render(client: httpx.Client, name: str, body: str, content_type: str = "text/html") -> SmokeOutcome:
    """Posts one document and checks that a decodable PNG comes back."""
    try:
        response = client.post("/render", content=body.encode("utf-8"), headers={"Content-Type": content_type})
    except httpx.HTTPError as e:
        return SmokeOutcome(name, False, message=f"Network error - {e}")

    if response.status_code != 200:
        return SmokeOutcome(name, False, message=f"Failed with status {response.status_code}: {response.text}")

    try:
        with Image.open(io.BytesIO(response.content)) as img:
            img.verify()
            fmt = img.format
    except Exception as e:
        return SmokeOutcome(name, False, message=f"Response is not a readable image: {e}")
    if fmt != "PNG":
        return SmokeOutcome(name, False, message=f"Expected PNG, got {fmt}")
    return SmokeOutcome(name, True, size=len(response.content), image=response.content)


def expect_rejected(client: httpx.Client, name: str, body: str) -> SmokeOutcome:
    try:
        response = client.post("/render", content=body.encode("utf-8"), headers={"Content-Type": "text/html"})
    except httpx.HTTPError as e:
        return SmokeOutcome(name, False, message=f"Network error - {e}")
    if response.status_code == 400:
        return SmokeOutcome(name, True, message="Correctly rejected empty input")
    return SmokeOutcome(name, False, message=f"Expected 400, got {response.status_code}")


def run_smoke_tests(client: httpx.Client, samples_dir: Optional[str] = None) -> List[SmokeOutcome]:
    return [
        render(client, "Simple HTML Test", _load_sample(samples_dir, "simple.html", SIMPLE_HTML)),
        render(client, "Complex HTML Test", _load_sample(samples_dir, "complex.html", COMPLEX_HTML)),
        render(client, "JSON Input Test", json.dumps({"html": JSON_HTML}), content_type="application/json"),
        expect_rejected(client, "Empty HTML Test", ""),
        render(client, "Invalid HTML Test", INVALID_HTML),
    ]


def save_images(outcomes: List[SmokeOutcome], output_dir: str) -> List[str]:
    os.makedirs(output_dir, exist_ok=True)
    saved = []
    for index, outcome in enumerate(o for o in outcomes if o.image):
        path = os.path.join(output_dir, f"test-{index + 1}.png")
        with open(path, "wb") as f:
            f.write(outcome.image)
        saved.append(path)
    return saved


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Smoke-test a running HTML Render Service.")
    parser.add_argument("--url", default=os.getenv("SERVICE_URL", DEFAULT_SERVICE_URL), help="Base URL of the service.")
    parser.add_argument("--samples", default=None, help="Directory holding simple.html and complex.html.")
    parser.add_argument("--output", default="test-output", help="Directory to save rendered PNGs into.")
    args = parser.parse_args(argv)

    print(f"Service URL: {args.url}")
    with httpx.Client(base_url=args.url, timeout=60.0) as client:
        if not check_service(client):
            print("Service is not running!")
            print("Start it with: python -m html_render_service.api.main")
            return 1

        outcomes = run_smoke_tests(client, args.samples)

    for outcome in outcomes:
        status = "OK  " if outcome.success else "FAIL"
        detail = f"({outcome.size} bytes)" if outcome.size else outcome.message
        print(f"{status} {outcome.name}: {detail}")

    rendered = [o for o in outcomes if o.image]
    print(f"Successful tests: {sum(o.success for o in outcomes)}/{len(outcomes)}")
    if rendered:
        print(f"Average image size: {round(sum(o.size for o in rendered) / len(rendered))} bytes")
        for path in save_images(outcomes, args.output):
            print(f"Saved: {path}")

    return 0 if all(o.success for o in outcomes) else 1


if __name__ == "__main__":
    sys.exit(main())
