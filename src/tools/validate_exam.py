import argparse
import json
import sys

from exam_engine.exam import exam_from_dict
from exam_engine.validation import validate_exam

def _load_json(path: str):
    with open(path, "r", encoding="utf-8") as fh:
        return json.load(fh)

def validate(exam_path: str, *, strict: bool = False) -> int:
    data = _load_json(exam_path)
    exams = data if isinstance(data, list) else [data]
    failed = False
    for raw in exams:
        if not isinstance(raw, dict):
            print("ERROR: exam entry is not an object")
            failed = True
            continue
        exam = exam_from_dict(raw)
        for issue in validate_exam(exam):
            where = " ".join(
                f"{k}={v}"
                for k, v in (("exam", exam.id), ("section", issue.section_id), ("question", issue.question_id))
                if v
            )
            print(f"{issue.severity.upper()}: {issue.message} ({where})")
            if issue.severity == "error" or strict:
                failed = True
    if failed:
        return 1
    print("OK")
    return 0

def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Check exam answer keys against their question types.")
    parser.add_argument("exam", help="exam definition JSON (one exam or a list)")
    parser.add_argument("--strict", action="store_true", help="treat warnings as failures")
    args = parser.parse_args(argv)
    return validate(args.exam, strict=args.strict)

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
