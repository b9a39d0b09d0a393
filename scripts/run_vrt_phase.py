"""
Run a VRT phase or report synthesis for one maintenance job from the CLI.

  python -m scripts.run_vrt_phase before <job_id>
  python -m scripts.run_vrt_phase after <job_id>
  python -m scripts.run_vrt_phase report <job_id>
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import uuid
from typing import Any

from app.domain.report import report_to_payload
from app.errors import VRTError
from app.services.report_service import ReportService
from app.services.vrt_service import VRTService, session_payload, summary_payload
from app.vrt.runtime import VRTRuntime, build_runtime


def _run(runtime: VRTRuntime, phase: str, job_id: uuid.UUID) -> dict[str, Any]:
    vrt = VRTService(runtime=runtime)
    if phase == "before":
        return vrt.run_reference_capture(job_id)
    if phase == "after":
        session, summary = vrt.run_after_phase(job_id)
        return {**session_payload(session), "summary": summary_payload(summary)}
    report, created = ReportService(runtime=runtime).generate(job_id)
    return {"created": created, "report": report_to_payload(report)}


def main(argv: list[str] | None = None, *, runtime: VRTRuntime | None = None) -> int:
    parser = argparse.ArgumentParser(description="Run a VRT phase for a maintenance job.")
    parser.add_argument("phase", choices=["before", "after", "report"], help="Pipeline step to run.")
    parser.add_argument("job_id", type=uuid.UUID, help="Maintenance job id.")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if runtime is None:
        from db.session import SessionLocal

        runtime = build_runtime(SessionLocal)

    with runtime:
        try:
            payload = _run(runtime, args.phase, args.job_id)
        except VRTError as exc:
            print(json.dumps({"success": False, "error": exc.code, "message": str(exc)}, indent=2))
            return 1

    print(json.dumps({"success": True, "data": payload}, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
