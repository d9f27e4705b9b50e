#!/usr/bin/env python3
"""
Run one ad campaign end-to-end from local reference images.

Synthesizes the scenario, renders every shot with bounded concurrency,
optionally retries failed shots, and exports the results.

Usage:
    python scripts/run_campaign.py product1.png product2.jpg \\
        --guidance "cyberpunk neon mood" --output out/
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import List

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from modules.campaign import CampaignController
from shared.errors import PipelineError
from shared.logging import get_logger
from shared.models.campaign import CampaignState, ReferenceImage
from shared.validation import guess_content_type

logger = get_logger("run_campaign")


def load_images(paths: List[str]) -> List[ReferenceImage]:
    """Read image files from disk as reference images."""
    images = []
    for raw_path in paths:
        path = Path(raw_path)
        if not path.is_file():
            raise FileNotFoundError(f"Image file not found: {raw_path}")
        data = path.read_bytes()
        images.append(ReferenceImage(
            filename=path.name,
            content_type=guess_content_type(path.name, data),
            data=data
        ))
    return images


async def run_campaign(
    image_paths: List[str],
    guidance: str,
    output_dir: Path,
    retry_rounds: int
) -> int:
    controller = CampaignController()
    controller.subscribe(
        lambda event: logger.info(
            f"Progress {controller.progress.label}",
            extra={"event_type": event["event_type"]}
        ) if event["event_type"] == "job_updated" else None
    )

    state = await controller.run(load_images(image_paths), guidance)
    if state == CampaignState.ERROR:
        logger.error(f"Campaign failed: {controller.error_message}")
        return 1

    for round_number in range(retry_rounds):
        if controller.progress.failed == 0:
            break
        retried = controller.retry_all()
        logger.info(f"Retry round {round_number + 1}: re-queued {retried} failed shots")
        await controller.wait_until_settled()

    written = controller.export_artifacts(output_dir)
    scenario = controller.scenario
    summary = {
        "title": scenario.title,
        "concept": scenario.concept,
        "targetAudience": scenario.target_audience,
        "marketingHook": scenario.marketing_hook,
        "shots": [
            {"id": job.id, "status": job.status, "prompt": job.prompt, "error": job.error}
            for job in controller.jobs
        ],
    }
    (output_dir / "scenario.json").write_text(json.dumps(summary, ensure_ascii=False, indent=2))

    progress = controller.progress
    logger.info(
        f"Exported {len(written)} shots to {output_dir} ({progress.completed}/{progress.total} completed, "
        f"{progress.failed} failed)"
    )
    return 0 if progress.failed == 0 else 2


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Generate a multi-shot ad campaign from reference images")
    parser.add_argument("images", nargs="+", help="Reference image files (up to 10)")
    parser.add_argument("--guidance", type=str, default="", help="Free-text creative direction")
    parser.add_argument("--output", type=Path, default=Path("campaign_output"), help="Export directory")
    parser.add_argument("--retry-failed", type=int, default=1, help="Rounds of retry-all for failed shots")

    args = parser.parse_args()

    try:
        exit_code = asyncio.run(run_campaign(args.images, args.guidance, args.output, args.retry_failed))
    except (PipelineError, FileNotFoundError) as e:
        logger.error(str(e))
        exit_code = 1
    sys.exit(exit_code)
