"""Per-file diff analysis via the LLM, run over a pull request's files in fixed-size batches."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from secureship.schemas.findings import Finding
from secureship.schemas.github import PullRequestFile
from secureship.services.llm import LlmServiceError, complete
from secureship.services.normalize import extract_json_array, normalize_findings
from secureship.services.prompts import SYSTEM_PROMPT, build_analysis_prompt

if TYPE_CHECKING:
    from secureship.core.config import Settings

logger = logging.getLogger(__name__)

# Files analyzed concurrently; the next batch starts only when the whole batch is done.
BATCH_SIZE = 5

FileAnalyzer = Callable[[PullRequestFile, "Settings"], Awaitable[list[Finding]]]


async def analyze_file(file: PullRequestFile, settings: "Settings") -> list[Finding]:
    """
    Ask the LLM for findings in one file's diff.

    Files without a patch yield no findings. LLM failures and unparseable
    answers are logged and yield no findings; they never raise.
    """
    if not file.patch:
        return []

    prompt = build_analysis_prompt(file.filename, file.patch)
    try:
        text = await complete(SYSTEM_PROMPT, prompt, settings)
    except LlmServiceError as e:
        logger.warning(
            "Analysis failed for %s: %s",
            file.filename,
            e.message,
            extra={"source_file": file.filename, "status": "error"},
        )
        return []

    logger.debug("LLM response for %s: %s", file.filename, text[:500])
    raw = extract_json_array(text)
    if raw is None:
        logger.info("No JSON array found in response for %s", file.filename)
        return []
    return normalize_findings(raw, file.filename)


async def analyze_files(
    files: list[PullRequestFile],
    settings: "Settings",
    analyze: FileAnalyzer = analyze_file,
    batch_size: int = BATCH_SIZE,
) -> list[Finding]:
    """
    Analyze files batch by batch and return all findings in file order.

    Within a batch every file runs concurrently; a file that raises contributes
    no findings and does not affect the others.
    """
    findings: list[Finding] = []
    for i in range(0, len(files), batch_size):
        batch = files[i : i + batch_size]
        results = await asyncio.gather(
            *(analyze(f, settings) for f in batch),
            return_exceptions=True,
        )
        for file, result in zip(batch, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(
                    "Unexpected error analyzing %s",
                    file.filename,
                    exc_info=result,
                    extra={"source_file": file.filename, "status": "error"},
                )
                continue
            findings.extend(result)
    return findings
