#!/usr/bin/env python3
"""
ResumeMatch - CLI Entry Point

Takes a master resume and a job description, writes the tailored resume as
JSON and DOCX, and prints how well it covers the job's keywords.

Usage:
    resumematch --resume input/master_resume.docx --job input/job_description.txt
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import Settings, load_settings
from .exceptions import ResumeMatchError
from .extractor import job_from_text
from .generator import generate_resume_docx, resume_filename
from .llm import AnthropicClient
from .logger import setup_logger
from .models import ATSScore, ResumeData
from .resume_parser import ensure_valid, load_resume_file
from .scorer import analyze_ats_compatibility
from .storage import JsonFileStore, SlotStorage
from .tailor import ResumeTailor, TailoringResult

GOOD_MATCH = 60
EXCELLENT_MATCH = 80


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="ResumeMatch - Tailor your resume to job descriptions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    resumematch --resume resume.docx --job job.txt
    resumematch -r resume.json -j job.txt -o applications/acme/ --save-master
    resumematch --job job.txt --offline
        """
    )

    parser.add_argument(
        "-r", "--resume",
        type=str,
        help="Master resume file (JSON/DOCX/TXT). Defaults to the saved master resume"
    )

    parser.add_argument(
        "-j", "--job",
        type=str,
        required=True,
        help="Path to job description text file"
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        default="output",
        help="Output directory (default: output/)"
    )

    parser.add_argument(
        "--offline",
        action="store_true",
        help="Skip the language model; extract keywords and score locally"
    )

    parser.add_argument(
        "--save-master",
        action="store_true",
        help="Remember the given resume as the master resume"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )

    return parser.parse_args(argv)


def load_master(path: Optional[str], slots: SlotStorage) -> ResumeData:
    """The resume from --resume, or the saved master resume."""
    if path:
        if not Path(path).exists():
            raise FileNotFoundError(f"File not found: {path}")
        return load_resume_file(Path(path))

    resume = slots.get_master_resume()
    if resume is None:
        raise ValueError("No --resume given and no master resume saved. Run once with --save-master.")
    return resume


def print_summary(score: ATSScore, model_score: Optional[ATSScore] = None, verbose: bool = False) -> None:
    """Print a summary of the matching results."""
    print("\n" + "=" * 60)
    print("RESUMEMATCH - MATCH SUMMARY")
    print("=" * 60)

    filled = score.match_percentage // 10
    bar = "█" * filled + "░" * (10 - filled)
    print(f"\nKeyword Coverage: [{bar}] {score.match_percentage}%")
    print(f"ATS Score: {score.score}/100")
    if model_score is not None:
        print(f"Model ATS Score: {model_score.score}/100")

    print(f"\nMatched Keywords: {len(score.keyword_matches)}")
    print(f"Missing Keywords: {len(score.missing_keywords)}")

    if verbose:
        if score.keyword_matches:
            print("\n--- Matched Keywords ---")
            print(f"  {', '.join(score.keyword_matches)}")
        if score.missing_keywords:
            print("\n--- Missing Keywords ---")
            print(f"  {', '.join(score.missing_keywords)}")
        if score.improvements:
            print("\n--- Suggestions ---")
            for tip in score.improvements:
                print(f"  - {tip}")

    print("\n" + "=" * 60)


async def run_tailoring(master: ResumeData, job_text: str, settings: Settings, verbose: bool = False) -> TailoringResult:
    client = AnthropicClient(
        api_key=settings.anthropic_api_key,
        model=settings.model,
        max_tokens=settings.max_tokens,
    )
    tailor = ResumeTailor(client)

    result = None
    async for update in tailor.tailor_with_progress(master, job_text):
        if update["step"] == "result":
            result = update["result"]
        else:
            print(f"[{update['progress']:3d}%] {update['message']}")
            if verbose and "data" in update:
                print(f"       {update['data']}")
    return result


def run_offline(master: ResumeData, job_text: str) -> TailoringResult:
    ensure_valid(master)
    job = job_from_text(job_text)
    score = analyze_ats_compatibility(master, job)
    return TailoringResult(
        tailored_resume=master,
        ats_score=score,
        job_description=job,
        local_score=score,
    )


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    settings = load_settings()
    setup_logger("DEBUG" if args.verbose else settings.log_level, settings.log_dir)

    print("ResumeMatch")
    print("-" * 40)

    slots = SlotStorage(JsonFileStore(settings.slots_path))

    try:
        master = load_master(args.resume, slots)
        print(f"Loaded resume for {master.contact.name or 'unknown candidate'}")

        if args.save_master:
            slots.set_master_resume(master)
            print(f"Saved master resume to {settings.slots_path}")

        job_path = Path(args.job)
        if not job_path.exists():
            raise FileNotFoundError(f"File not found: {args.job}")
        job_text = job_path.read_text(encoding="utf-8")

        if args.offline:
            print("Scoring resume locally...")
            result = run_offline(master, job_text)
        else:
            result = asyncio.run(run_tailoring(master, job_text, settings, args.verbose))

    except (ResumeMatchError, ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 2

    job = result.job_description
    output_dir = Path(args.output)
    output_dir.mkdir(parents=True, exist_ok=True)

    json_path = output_dir / "tailored_resume.json"
    json_path.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")

    docx_path = output_dir / resume_filename(job.company, job.title)
    docx_path.write_bytes(generate_resume_docx(result.tailored_resume, job.company, job.title))

    if result.degraded:
        print(f"\n⚠ Some steps used placeholder output: {', '.join(result.degraded_steps)}")

    print_summary(result.local_score, None if args.offline else result.ats_score, args.verbose)

    print(f"\nOutput files saved to: {output_dir}/")
    print(f"  - {json_path.name}")
    print(f"  - {docx_path.name}")

    coverage = result.local_score.match_percentage
    if coverage >= EXCELLENT_MATCH:
        print("\n✓ Excellent match! Resume is well-tailored for this position.")
        return 0
    elif coverage >= GOOD_MATCH:
        print("\n⚠ Good match. Review the suggestions to close the gap.")
        return 0
    else:
        print("\n⚠ Low match. Consider adding more relevant experience or skills.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
