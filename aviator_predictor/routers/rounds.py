from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import StreamingResponse

from aviator_predictor.dependencies import get_controller, status_for
from aviator_predictor.domain.messages import message_text
from aviator_predictor.manager import PredictorController
from aviator_predictor.models.dc_models import RoundResult, RoundSnapshot
from aviator_predictor.round_subscriber import RoundSubscriber

round_router = APIRouter(prefix="/api/sessions/{session_id}/round")


def session_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail=message_text("sessionNotFound")
    )


class RoundAPI:
    @staticmethod
    @round_router.get("", response_model=RoundSnapshot)
    async def get_round(
        session_id: UUID, controller: PredictorController = Depends(get_controller)
    ) -> RoundSnapshot:
        snapshot = controller.round_state(session_id)
        if snapshot is None:
            raise session_not_found()
        return snapshot

    @staticmethod
    @round_router.post("/start", response_model=RoundResult)
    async def start_round(
        session_id: UUID,
        response: Response,
        controller: PredictorController = Depends(get_controller),
    ) -> RoundResult:
        result = await controller.start_round(session_id)
        response.status_code = status_for(result.error)
        return result

    @staticmethod
    @round_router.post("/next", response_model=RoundResult)
    async def next_round(
        session_id: UUID,
        response: Response,
        controller: PredictorController = Depends(get_controller),
    ) -> RoundResult:
        result = controller.advance_to_next_round(session_id)
        response.status_code = status_for(result.error)
        return result

    @staticmethod
    @round_router.get("/outcome", response_model=RoundSnapshot)
    async def wait_for_outcome(
        session_id: UUID, controller: PredictorController = Depends(get_controller)
    ) -> RoundSnapshot:
        """Long poll: answers once the running round is complete."""
        snapshot = await controller.wait_for_outcome(session_id)
        if snapshot is None:
            raise session_not_found()
        return snapshot

    @staticmethod
    @round_router.get("/stream")
    async def stream_round(
        session_id: UUID, controller: PredictorController = Depends(get_controller)
    ) -> StreamingResponse:
        session = controller.get_session(session_id)
        if session is None:
            raise session_not_found()
        subscriber = RoundSubscriber(controller.round_engine, session)
        return StreamingResponse(
            subscriber.event_generator(), media_type="text/event-stream"
        )
