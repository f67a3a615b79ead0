"""Chat reply endpoint — one user message in, one structured reply out."""

from fastapi import APIRouter, Depends, Header, HTTPException, Response, status

from chat_backend.application.schemas import (
    ChatRespondRequest,
    ChatRespondResponse,
    ImageAnalysisSchema,
)
from chat_backend.application.services import ChatResponseService
from chat_backend.application.services.completion_orchestrator import new_trace_id
from chat_backend.domain.entities import MessageFile
from chat_backend.domain.exceptions import (
    AccessDeniedError,
    EntityNotFoundError,
    ModelRequestFailedError,
)
from chat_backend.infrastructure.dependencies import (
    get_chat_response_service,
    get_current_user_id,
)

router = APIRouter(prefix="/chat", tags=["Chat"])

TRACE_HEADER = "X-Trace-Id"


@router.post("/respond", response_model=ChatRespondResponse)
async def respond(
    request: ChatRespondRequest,
    response: Response,
    user_id: str = Depends(get_current_user_id),
    x_trace_id: str | None = Header(default=None),
    service: ChatResponseService = Depends(get_chat_response_service),
) -> ChatRespondResponse:
    """Generate the assistant reply to a user message.

    The user message is stored first; the reply is stored only when a
    model produced one. When every model candidate fails the response is
    a 500 whose detail carries only the trace id; per-model diagnostics
    go to the server log under the same id.
    """
    trace_id = (x_trace_id or "").strip() or new_trace_id()
    files = [
        MessageFile(
            url=f.url,
            file_name=f.file_name,
            mime_type=f.mime_type,
            size=f.size,
            extracted_text=f.extracted_text,
        )
        for f in request.files or []
    ]

    try:
        reply = await service.respond(
            user_id,
            request.conversation_id,
            request.message,
            files=files,
            model=request.model,
            trace_id=trace_id,
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except AccessDeniedError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except ModelRequestFailedError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e),
            headers={TRACE_HEADER: e.trace_id},
        )

    response.headers[TRACE_HEADER] = reply.trace_id
    return ChatRespondResponse(
        message=reply.message,
        suggestions=reply.suggestions,
        model=reply.model,
        trace_id=reply.trace_id,
        image_analyses=[
            ImageAnalysisSchema(file_name=a.file_name, analysis=a.analysis)
            for a in reply.image_analyses
        ],
    )
