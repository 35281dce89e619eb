"""
PDF Generation Middleware
=========================

Turns the current case draft into a downloadable PDF summary when the
user asks for one. Once triggered it always answers and stops: with a
confirmation, with guidance to build a draft first, or with a retry
suggestion when rendering fails.
"""

import logging
from datetime import datetime

from ..capabilities import Brand, call_with_timeout
from ..context_manager import latest_message_text
from ..errors import CapabilityError
from ..exporter import DEFAULT_ORGANIZATION, generate_filename
from ..rules import PDF_KEYWORDS, contains_keyword
from ..schemas import GeneratedPDF
from ..pipeline import PipelineMiddleware, MiddlewareResult

logger = logging.getLogger(__name__)

NO_DRAFT_RESPONSE = """I'd be happy to help you generate a PDF case summary! However, I don't see a case draft in our conversation yet.

**To generate a PDF, please first:**
• Build a case draft with your case information
• Provide details about your legal matter
• Share key facts and timeline

Once we have your case information organized, I can generate a professional PDF summary that you can share with attorneys or keep for your records.

Would you like me to help you build a case draft first?"""

SUCCESS_RESPONSE = """PDF Generated Successfully

Your case summary is ready for download. You can view and download your PDF in the Matter tab."""

ERROR_RESPONSE = """I'm sorry, but I encountered an error while generating your PDF case summary.

**What happened:**
• PDF generation service is temporarily unavailable
• This might be due to high demand or maintenance

**What you can do:**
• Try again in a few minutes
• I can help you rebuild your case draft
• Contact support if the issue persists

Would you like me to help you organize your case information again?"""


def render_failure_response(error: str = None) -> str:
    return (
        f"I encountered an issue generating your PDF case summary. {error or 'Please try again later.'}\n\n"
        "**Alternative options:**\n"
        "• I can help you organize your case information again\n"
        "• You can request a new case draft\n"
        "• Contact support if the issue persists\n\n"
        "Would you like me to help you rebuild your case draft?"
    )


class PdfGenerationMiddleware(PipelineMiddleware):
    name = "pdf_generation"

    async def execute(self, messages, context, team_config, env):
        text = latest_message_text(messages)
        if not contains_keyword(text, PDF_KEYWORDS):
            return MiddlewareResult(context=context)

        draft = context.case_draft
        if draft is None:
            return MiddlewareResult(context=context, response=NO_DRAFT_RESPONSE, should_stop=True)

        if env.pdf_renderer is None:
            logger.warning(f"PDF requested for session {context.session_id} but no renderer is configured")
            return MiddlewareResult(context=context, response=ERROR_RESPONSE, should_stop=True)

        client_name = context.contact_info.name
        brand = Brand(
            name=team_config.name or DEFAULT_ORGANIZATION,
            color=team_config.brand_color,
        )

        try:
            result = await call_with_timeout(
                env.pdf_renderer.render(draft, client_name, brand),
                env.settings.capability_timeout,
                "PDF rendering",
            )
        except CapabilityError as e:
            logger.error(f"PDF generation failed for session {context.session_id}: {e}")
            return MiddlewareResult(context=context, response=ERROR_RESPONSE, should_stop=True)
        except Exception as e:
            logger.error(f"PDF generation error for session {context.session_id}: {e}", exc_info=True)
            return MiddlewareResult(context=context, response=ERROR_RESPONSE, should_stop=True)

        if not result.success or not result.pdf_bytes:
            logger.warning(f"PDF renderer reported failure for session {context.session_id}: {result.error}")
            return MiddlewareResult(
                context=context, response=render_failure_response(result.error), should_stop=True
            )

        context.generated_pdf = GeneratedPDF(
            filename=generate_filename(draft, client_name),
            size=len(result.pdf_bytes),
            generated_at=datetime.utcnow().isoformat(),
            matter_type=draft.matter_type,
        )
        context.touch()

        logger.info(
            f"Generated PDF {context.generated_pdf.filename} ({context.generated_pdf.size} bytes) "
            f"for session {context.session_id}"
        )
        return MiddlewareResult(context=context, response=SUCCESS_RESPONSE, should_stop=True)
