import argparse
import dataclasses
import json
import logging
import sys

from exam_engine.aggregate import BandMap, summarize_attempt
from exam_engine.config import configure_logging, load_settings
from exam_engine.exam import attempt_from_dict, exam_from_dict

logger = logging.getLogger(__name__)

def _load_json(path: str):
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)

def _band_maps(path: str | None) -> list[BandMap]:
    if not path:
        return []
    rows = _load_json(path)
    return [
        BandMap(
            section=str(r["section"]).upper(),
            min_raw=int(r["minRaw"]),
            max_raw=int(r["maxRaw"]),
            band=float(r["band"]),
            exam_type=str(r.get("examType") or "IELTS").upper(),
        )
        for r in rows
    ]

def regrade(exam_path: str, attempts_path: str, band_path: str | None, part_size: int) -> int:
    exam = exam_from_dict(_load_json(exam_path))
    raw_attempts = _load_json(attempts_path)
    if isinstance(raw_attempts, dict):
        raw_attempts = [raw_attempts]
    band_maps = _band_maps(band_path)

    had_errors = False
    for raw in raw_attempts:
        attempt = attempt_from_dict(raw)
        if attempt.exam_id and attempt.exam_id != exam.id:
            logger.warning("regrade_skipped attempt_id=%s exam_id=%s", attempt.id, attempt.exam_id)
            continue
        summary = summarize_attempt(exam, attempt, band_maps=band_maps, part_size=part_size)
        if summary.errors:
            had_errors = True
        print(json.dumps({"attemptId": attempt.id, **dataclasses.asdict(summary)}, ensure_ascii=False))
    return 1 if had_errors else 0

def main(argv: list[str]) -> int:
    settings = load_settings()
    configure_logging(settings)
    parser = argparse.ArgumentParser(description="Re-grade stored attempts and print one summary per line.")
    parser.add_argument("exam", help="exam definition JSON")
    parser.add_argument("attempts", help="attempts JSON (one attempt or a list)")
    parser.add_argument("--band-map", default=None, help="band map rows JSON")
    args = parser.parse_args(argv)
    return regrade(args.exam, args.attempts, args.band_map, settings.listening_questions_per_part)

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
