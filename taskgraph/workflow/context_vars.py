"""Well-known context keys shared by the workflow tasks and the service."""

QUERY = "query"
ENHANCED_QUERY = "enhanced_query"
SEARCH_RESULTS = "search_results"
ANSWER = "answer"
