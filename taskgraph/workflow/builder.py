"""Construction of the query-answering graph."""

from typing import Optional

from taskgraph.core.graph import TaskGraph
from taskgraph.workflow.clients import LLMClient, PageTextClient, SearchClient
from taskgraph.workflow.tasks import DataRetrieverTask, GenerateAnswerTask, QueryEnhanceTask


def create_agent_workflow(
    query: str,
    llm: LLMClient,
    search: Optional[SearchClient] = None,
    pages: Optional[PageTextClient] = None,
    answer_with_llm: bool = True,
) -> TaskGraph:
    """Build a fresh workflow graph for one query.

    Tasks are constructed on every call so no state leaks between runs.

    Args:
        query: The user's query
        llm: Client used to enhance the query (and answer, if enabled)
        search: Optional search client; retrieval is left out without one
        pages: Optional page fetcher; retrieval uses snippets without one
        answer_with_llm: Compose the answer with the LLM instead of echoing

    Returns:
        TaskGraph: enhance -> (retrieve ->) generate
    """
    graph = TaskGraph()
    tasks = [QueryEnhanceTask(query, llm)]
    if search is not None:
        tasks.append(DataRetrieverTask(search, pages))
    tasks.append(GenerateAnswerTask(llm if answer_with_llm else None))

    graph.chain(*tasks)
    return graph
