"""
LangGraph retrieval pipeline: load corpus → embed query → classify intent → retrieve → assemble context.

Orchestration only; the heavy lifting (embeddings) goes to the provider. The
answer itself is generated outside the graph so it can be streamed.
"""

import logging
from typing import Any, TypedDict

from langgraph.graph import END, StateGraph

from menuchat.agent.llm import LLMProvider, Message
from menuchat.core.config import HISTORY_MAX, HISTORY_TRIM_LEN, USER_TRIM_LEN
from menuchat.core.context import GovernanceContext
from menuchat.services.context_assembler import assemble_context
from menuchat.services.corpus_index import CorpusIndex
from menuchat.services.retrieval_service import retrieve
from menuchat.services.text_processing import CorpusChunk

logger = logging.getLogger(__name__)


class RetrievalState(TypedDict, total=False):
    question: str
    index: CorpusIndex
    query_vector: tuple[float, ...]
    intent: str
    selected: list[CorpusChunk]
    context: str


def trim_history(history: list[dict[str, Any]] | None) -> list[Message]:
    """Last HISTORY_MAX user/assistant turns, each cut at HISTORY_TRIM_LEN characters."""
    if not history:
        return []
    out: list[Message] = []
    for m in history[-HISTORY_MAX:]:
        role = (m.get("role") or "").strip().lower()
        if role not in ("user", "assistant"):
            continue
        out.append({"role": role, "content": str(m.get("content") or "")[:HISTORY_TRIM_LEN]})
    return out


def build_messages(message: str, history: list[Message], context: str, intent: str) -> list[Message]:
    system_prompt = f"""
You are a friendly, professional AI assistant for the TÜRKIZ restaurant website.

SCOPE & ACCURACY
- Answer questions only using the provided restaurant/menu context.
- If the context does NOT contain the answer, say so clearly and briefly.
- NEVER invent dishes, prices, policies, or details.

LANGUAGE & STYLE
- Respond politely and naturally in the customer's language.
- Keep it short: 1–2 short sentences OR up to 3 simple bullet points.

RECOMMENDATIONS
- If the user asks for a recommendation but provides no preferences, ask 1–2 short clarifying questions first.
- If preferences are provided, suggest 2–3 items from the context only.

COMPARISONS & CHEAPEST
- For comparisons or "cheapest" requests, use prices from the context only.
- If you cannot compare due to missing items or prices, say that clearly and ask a clarifying question.

INTENT (internal): {intent or "general"}
""".strip()

    context_block = f"""
RESTAURANT / MENU CONTEXT
Use this text as the ONLY source of truth:

{context}
""".strip()

    return [
        {"role": "system", "content": system_prompt},
        {"role": "system", "content": context_block},
        *history,
        {"role": "user", "content": (message or "")[:USER_TRIM_LEN]},
    ]


def build_retrieval_graph(ctx: GovernanceContext, provider: LLMProvider):
    """
    Build and compile the retrieval graph for one context/provider pair.
    load_corpus → embed_query → classify_intent → retrieve → assemble_context → END.
    """

    async def _load_corpus(state: RetrievalState) -> dict:
        return {"index": await ctx.corpus.get(provider)}

    async def _embed_query(state: RetrievalState) -> dict:
        question = (state.get("question") or "")[:USER_TRIM_LEN]
        vectors = await provider.embed([question])
        return {"query_vector": tuple(vectors[0])}

    async def _classify_intent(state: RetrievalState) -> dict:
        match = await ctx.intents.classify(provider, state["query_vector"])
        return {"intent": match.label}

    def _retrieve(state: RetrievalState) -> dict:
        index = state["index"]
        result = retrieve(state["query_vector"], index.chunks, index.vectors, state["intent"])
        return {"selected": result.selected}

    def _assemble(state: RetrievalState) -> dict:
        context = assemble_context(state["selected"])
        logger.info("[graph:assemble_context] OUT blocks=%d context_len=%d", len(state["selected"]), len(context))
        return {"context": context}

    graph = StateGraph(RetrievalState)
    graph.add_node("load_corpus", _load_corpus)
    graph.add_node("embed_query", _embed_query)
    graph.add_node("classify_intent", _classify_intent)
    graph.add_node("retrieve", _retrieve)
    graph.add_node("assemble_context", _assemble)

    graph.set_entry_point("load_corpus")
    graph.add_edge("load_corpus", "embed_query")
    graph.add_edge("embed_query", "classify_intent")
    graph.add_edge("classify_intent", "retrieve")
    graph.add_edge("retrieve", "assemble_context")
    graph.add_edge("assemble_context", END)

    return graph.compile()


async def run_retrieval(ctx: GovernanceContext, provider: LLMProvider, question: str) -> RetrievalState:
    """Run the graph for one question. Returns the final state (context, intent, selected chunks)."""
    logger.info("[run_retrieval] START question=%r", question[:200])
    final = await build_retrieval_graph(ctx, provider).ainvoke({"question": question})
    logger.info("[run_retrieval] END intent=%s selected=%s",
                final.get("intent"), [c.id for c in final.get("selected") or []])
    return final
