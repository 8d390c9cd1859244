"""Pydantic contracts for socket events and REST bodies.

Socket payloads use the camelCase keys the browser client sends; REST
bodies use snake_case like the rest of the HTTP API.
"""

from typing import Annotated, Any, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from mimir.errors import PayloadError
from mimir.services.game.state import AnswerResult, ClaimType

PlayerName = Annotated[str, Field(min_length=1, max_length=40)]


class _Wire(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra='ignore',
    )


class CreateRoomIn(_Wire):
    player_name: PlayerName


class GetRoomIn(_Wire):
    room_code: str = Field(min_length=1, max_length=12)

    @field_validator('room_code')
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.upper()


class JoinRoomIn(GetRoomIn):
    player_name: PlayerName


class EmptyIn(_Wire):
    """Events that carry no payload (ready toggle, start, next, end)."""


class QuizIn(_Wire):
    model_config = ConfigDict(extra='allow')

    id: Optional[Union[int, str]] = None
    title: Optional[str] = None
    questions: List[Dict[str, Any]] = Field(default_factory=list)


class LoadQuizIn(_Wire):
    quiz: QuizIn


class SubmitAnswerIn(_Wire):
    is_correct: bool
    answer: str = Field(default='', max_length=500)
    points: Optional[int] = Field(default=None, ge=0, le=100)


INBOUND_EVENTS: Dict[str, Type[_Wire]] = {
    'room:create': CreateRoomIn,
    'room:join': JoinRoomIn,
    'room:get': GetRoomIn,
    'player:ready': EmptyIn,
    'quiz:load': LoadQuizIn,
    'game:start': EmptyIn,
    'game:nextQuestion': EmptyIn,
    'game:submitAnswer': SubmitAnswerIn,
    'game:end': EmptyIn,
}


class Outbound:
    ROOM_UPDATED = 'room:updated'
    QUIZ_LOADED = 'quiz:loaded'
    GAME_STARTED = 'game:started'
    QUESTION_CHANGED = 'game:questionChanged'
    ANSWER_SUBMITTED = 'game:answerSubmitted'
    SCORE_UPDATED = 'game:scoreUpdated'
    GAME_ENDED = 'game:ended'
    PLAYER_LEFT = 'player:left'
    ERROR = 'error'


def _error_details(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {'loc': [str(part) for part in err.get('loc', ())], 'msg': err.get('msg', '')}
        for err in exc.errors()
    ]


def parse_inbound(event: str, data: Any) -> _Wire:
    """Validate a socket payload for ``event`` or raise ``PayloadError``."""
    model = INBOUND_EVENTS[event]
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise PayloadError([{'loc': [], 'msg': 'payload must be an object'}])
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise PayloadError(_error_details(exc)) from exc


def parse_body(model: Type[BaseModel], data: Any) -> BaseModel:
    try:
        return model.model_validate(data or {})
    except ValidationError as exc:
        raise PayloadError(_error_details(exc)) from exc


# ---- REST bodies ----

class CreateGameIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    quiz_file_id: int
    player_names: List[PlayerName] = Field(min_length=2, max_length=8)


class AnswerIn(BaseModel):
    question_id: int
    player_id: int
    player_name: PlayerName
    spoken_answer: str = Field(default='', max_length=500)
    result: AnswerResult
    is_addressed: bool
    time_taken: int = Field(default=0, ge=0)
    attempt_order: int = Field(ge=0)
    points_awarded: int = Field(default=0, ge=0)


class OverruleIn(BaseModel):
    question_id: int
    original_answer_id: int
    challenger_id: int
    challenger_name: PlayerName
    claim_type: ClaimType
    original_result: AnswerResult
    new_result: AnswerResult
    points_adjustment: int


class CompleteGameIn(BaseModel):
    scores: Optional[Dict[str, int]] = None
