from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from langsmith_integration import configure_langsmith, get_default_logger
from .intake import run_intake_turn
from .session_store import InMemorySessionStore, SessionStore
from .sources import AnswerSourceCascade, build_default_cascade
from .state import SOURCE_INTAKE, ChatResult, ChatTurnState

logger = get_default_logger()


class MalformedMessageError(ValueError):
    pass


def build_router_graph(cascade: AnswerSourceCascade) -> StateGraph:
    langsmith_status = configure_langsmith()

    def route_node(state: ChatTurnState) -> ChatTurnState:
        branch = "answer" if state["session"].profile_complete else "profile_intake"
        return {"branch": branch}

    def decide_node(state: ChatTurnState) -> str:
        return state.get("branch", "profile_intake")

    def profile_intake_node(state: ChatTurnState) -> ChatTurnState:
        session, question = run_intake_turn(state["session"], state["message"])
        return {"session": session, "response": question, "source": SOURCE_INTAKE}

    def answer_node(state: ChatTurnState) -> ChatTurnState:
        # Free-form turns never run profile extraction.
        attempt = cascade.answer(state["message"], state["session"].user_context, state.get("conversation_id", ""))
        return {"response": attempt.text, "source": attempt.source}

    def wrap_node(name: str, fn):
        def _wrapped(state: ChatTurnState) -> ChatTurnState:
            logger.log_event(f"node_started:{name}", {"conversation_id": state.get("conversation_id")})
            try:
                res = fn(state)
            except Exception as exc:
                logger.log_event(f"node_error:{name}", {"error": str(exc)})
                raise
            logger.log_event(f"node_finished:{name}", {"result_keys": list(res.keys())})
            return res

        return _wrapped

    graph = StateGraph(ChatTurnState)
    graph.add_node("route", wrap_node("route", route_node))
    graph.add_node("profile_intake", wrap_node("profile_intake", profile_intake_node))
    graph.add_node("answer", wrap_node("answer", answer_node))

    graph.add_edge(START, "route")
    graph.add_conditional_edges(
        "route",
        decide_node,
        {"profile_intake": "profile_intake", "answer": "answer"},
    )
    graph.add_edge("profile_intake", END)
    graph.add_edge("answer", END)

    logger.log_event("langsmith_config", langsmith_status)
    logger.log_event("cascade_config", {"sources": [source.name for source in cascade.sources]})
    return graph


class ConversationRouter:
    """Routes each message to the intake script or the answer cascade.

    A conversation stays in intake until the question list is exhausted, then
    answers free-form questions for the rest of the process lifetime.
    """

    def __init__(self, store: SessionStore | None = None, cascade: AnswerSourceCascade | None = None) -> None:
        self.store = store if store is not None else InMemorySessionStore()
        self.cascade = cascade if cascade is not None else build_default_cascade()
        self.graph = build_router_graph(self.cascade).compile()

    def handle_message(self, message: str | None, conversation_id: str | None) -> ChatResult:
        if not isinstance(message, str):
            raise MalformedMessageError("message is required")
        if not conversation_id:
            raise MalformedMessageError("conversation id is required")

        session = self.store.create_if_absent(conversation_id)
        state = self.graph.invoke({"message": message, "conversation_id": conversation_id, "session": session})

        updated = state["session"]
        self.store.update(conversation_id, updated)
        return ChatResult(
            response_text=state["response"],
            user_context=updated.user_context,
            source=state.get("source", ""),
        )
