#!/usr/bin/env python3
from __future__ import annotations

import base64
import importlib
import json
import mimetypes
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from fastapi.testclient import TestClient


def image_data_uri(path: Path) -> str:
  mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
  encoded = base64.b64encode(path.read_bytes()).decode("ascii")
  return f"data:{mime_type};base64,{encoded}"


def run(image_paths: list[str]) -> int:
  repo_root = Path(__file__).resolve().parents[1]
  backend_dir = repo_root / "backend"
  if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

  if not image_paths:
    print("usage: prescription_e2e_smoke.py IMAGE [IMAGE ...]")
    return 2

  # Smoke runs use the local opaque-token identity unless told otherwise.
  os.environ.setdefault("RXLENS_IDENTITY_PROVIDER", "trusted")

  backend_module = importlib.import_module("main")
  backend_module = importlib.reload(backend_module)

  user_id = f"smoke-user-{datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')}"
  headers = {"Authorization": f"Bearer {user_id}"}
  results: list[dict[str, Any]] = []

  with TestClient(backend_module.app) as client:
    for raw_path in image_paths:
      path = Path(raw_path)
      item: dict[str, Any] = {"image": str(path)}
      if not path.is_file():
        item["pass"] = False
        item["error"] = "Image file not found."
        results.append(item)
        continue

      response = client.post(
        "/analyze-prescription",
        headers=headers,
        json={"image": image_data_uri(path)},
      )
      item["status_code"] = response.status_code
      body = response.json()
      item["body"] = body
      if response.status_code != 200:
        item["pass"] = False
        item["error"] = body.get("error") if isinstance(body, dict) else response.text[:200]
        results.append(item)
        continue

      prescription_id = body.get("prescriptionId")
      detail = client.get(f"/prescriptions/{prescription_id}", headers=headers)
      care_plan = client.get(f"/prescriptions/{prescription_id}/care-plan", headers=headers)
      item["detail_status_code"] = detail.status_code
      item["care_plan_status_code"] = care_plan.status_code
      item["pass"] = (
        detail.status_code == 200
        and care_plan.status_code == 200
        and detail.json().get("analysis") == body.get("analysis")
      )
      if not item["pass"]:
        item["error"] = "Stored prescription did not round-trip through detail and care-plan endpoints."
      results.append(item)

  passed = sum(1 for item in results if item.get("pass"))
  failed = len(results) - passed
  timestamp = datetime.now(timezone.utc).isoformat()

  report_lines = [
    "# Prescription E2E Smoke Report",
    "",
    f"- Timestamp (UTC): `{timestamp}`",
    f"- RXLENS_IDENTITY_PROVIDER: `{os.getenv('RXLENS_IDENTITY_PROVIDER')}`",
    f"- Total images: `{len(results)}`",
    f"- Passed: `{passed}`",
    f"- Failed: `{failed}`",
    "",
    "## Results",
    "",
  ]
  for item in results:
    status = "PASS" if item.get("pass") else "FAIL"
    report_lines.append(f"### {status} - {item['image']}")
    report_lines.append(f"- Analyze status code: `{item.get('status_code')}`")
    report_lines.append(f"- Detail status code: `{item.get('detail_status_code')}`")
    report_lines.append(f"- Care plan status code: `{item.get('care_plan_status_code')}`")
    if item.get("error"):
      report_lines.append(f"- Error: `{item['error']}`")
    report_lines.append("```json")
    report_lines.append(json.dumps(item.get("body"), indent=2, ensure_ascii=True))
    report_lines.append("```")
    report_lines.append("")

  report_path = repo_root / "PRESCRIPTION_E2E_SMOKE_REPORT.md"
  report_path.write_text("\n".join(report_lines), encoding="utf-8")
  print(f"Wrote report: {report_path}")
  print(f"Passed {passed}/{len(results)} images.")

  return 0 if failed == 0 else 1


if __name__ == "__main__":
  raise SystemExit(run(sys.argv[1:]))
