"""
File Analysis Middleware
========================

Analyzes files attached to the current turn before the agent sees it.

- Only runs when the latest message is from the user
- Files whose id is already in processed_files are skipped
- Each file is marked processed as soon as its analysis finishes,
  successful or not
- Timeouts and analyzer errors become confidence-0 results with an
  apology, never a failed turn
"""

import logging
from datetime import datetime
from typing import List

from ..capabilities import (
    analysis_error,
    call_with_timeout,
    determine_analysis_type,
    extract_file_id,
    get_analysis_question,
)
from ..errors import CapabilityError, CapabilityTimeoutError
from ..schemas import AnalysisResult, FileAnalysisEntry, FileAnalysisRecord, MessageRole
from ..pipeline import PipelineMiddleware, MiddlewareResult

logger = logging.getLogger(__name__)

TIMEOUT_SUMMARY = (
    "The document analysis took too long to complete, so I couldn't finish reviewing this file."
)
ERROR_SUMMARY = (
    "The file analysis failed due to a technical error. The analysis service may be temporarily unavailable."
)

NEXT_STEPS = [
    "Create a legal matter for attorney review",
    "Identify potential legal issues or concerns",
    "Determine appropriate legal services needed",
    "Prepare for consultation with an attorney",
]


def build_analysis_response(results: List[FileAnalysisEntry]) -> str:
    """Document-by-document summary for the files that were analyzed"""
    parts = ["I've analyzed your uploaded document(s) and here's what I found:\n"]

    for result in results:
        parts.append(f"**{result.file_name}**")

        if result.summary:
            parts.append(f"**Document Analysis:** {result.summary}\n")
        if result.entities.people:
            parts.append(f"**Parties Involved:** {', '.join(result.entities.people)}")
        if result.entities.orgs:
            parts.append(f"**Organizations:** {', '.join(result.entities.orgs)}")
        if result.entities.dates:
            parts.append(f"**Important Dates:** {', '.join(result.entities.dates)}")
        if result.key_facts:
            parts.append("**Key Facts:**")
            parts.extend(f"• {fact}" for fact in result.key_facts[:3])
        if result.action_items:
            parts.append("**Recommended Actions:**")
            parts.extend(f"• {action}" for action in result.action_items[:3])
        parts.append("")

    parts.append("Based on this analysis, I can help you:")
    parts.extend(f"• {step}" for step in NEXT_STEPS)
    parts.append("")
    parts.append("Would you like me to help you with any of these next steps?")
    return "\n".join(parts)


def build_failure_response(results: List[FileAnalysisEntry]) -> str:
    """Apology when no file could be analyzed"""
    names = ", ".join(f"**{r.file_name}**" for r in results)
    reasons = {r.summary for r in results if r.summary}
    reason = " ".join(sorted(reasons)) if reasons else ERROR_SUMMARY
    return (
        f"I'm sorry, I wasn't able to analyze {names}. {reason}\n\n"
        f"Could you describe the document manually? Telling me what kind of document it is, "
        f"who is involved and any important dates will let me keep helping with your case."
    )


class FileAnalysisMiddleware(PipelineMiddleware):
    name = "file_analysis"

    async def execute(self, messages, context, team_config, env):
        attachments = context.current_attachments or []
        if not attachments:
            return MiddlewareResult(context=context)

        if not messages or messages[-1].role != MessageRole.USER:
            logger.info(f"Skipping file analysis - no user message in current request (session {context.session_id})")
            context.current_attachments = None
            return MiddlewareResult(context=context)

        started_at = datetime.utcnow().isoformat()
        new_files = []
        results: List[FileAnalysisEntry] = []

        for attachment in attachments:
            file_id = extract_file_id(attachment.url)
            if not file_id:
                logger.warning(f"Could not extract file id from attachment url {attachment.url!r}")
                continue
            if file_id in context.processed_files:
                logger.info(f"Skipping already processed file {file_id}")
                continue

            analysis_type = determine_analysis_type(attachment)
            question = get_analysis_question(analysis_type)
            logger.info(
                f"Analyzing file {file_id} ({attachment.name}, {analysis_type.value}) for session {context.session_id}"
            )

            error = None
            if env.document_analyzer is None:
                analysis = analysis_error("Automatic document analysis is not available right now.")
                error = "analyzer_unavailable"
            else:
                try:
                    analysis = await call_with_timeout(
                        env.document_analyzer.analyze(file_id, question),
                        env.settings.file_analysis_timeout,
                        f"Analysis of {file_id}",
                    )
                except CapabilityError as e:
                    logger.warning(f"File analysis failed for {file_id}: {e}")
                    analysis = analysis_error(TIMEOUT_SUMMARY if isinstance(e, CapabilityTimeoutError) else ERROR_SUMMARY)
                    error = str(e)
                except Exception as e:
                    logger.error(f"File analysis error for {file_id}: {e}", exc_info=True)
                    analysis = analysis_error(ERROR_SUMMARY)
                    error = str(e)

            if analysis is None:
                analysis = analysis_error(ERROR_SUMMARY)

            context.mark_file_processed(file_id)
            new_files.append(attachment)
            results.append(self._entry(file_id, attachment, analysis_type, analysis, error))

        context.current_attachments = None

        if not results:
            return MiddlewareResult(context=context)

        successful = [r for r in results if r.confidence > 0]
        context.file_analysis = FileAnalysisRecord(
            status="completed" if successful else "failed",
            files=new_files,
            results=results,
            started_at=started_at,
            processed_at=datetime.utcnow().isoformat(),
            total_files=len(results),
        )

        if successful:
            logger.info(f"File analysis completed for {len(successful)}/{len(results)} files")
            return MiddlewareResult(
                context=context, response=build_analysis_response(successful), should_stop=True
            )

        logger.warning(f"No file could be analyzed for session {context.session_id}")
        return MiddlewareResult(context=context, response=build_failure_response(results), should_stop=True)

    @staticmethod
    def _entry(file_id, attachment, analysis_type, analysis: AnalysisResult, error) -> FileAnalysisEntry:
        return FileAnalysisEntry(
            file_id=file_id,
            file_name=attachment.name or file_id,
            file_type=attachment.type,
            analysis_type=analysis_type,
            confidence=analysis.confidence,
            summary=analysis.summary,
            entities=analysis.entities,
            key_facts=analysis.key_facts,
            action_items=analysis.action_items,
            error=error,
        )
