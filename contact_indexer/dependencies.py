from typing import Annotated

from fastapi import Depends, Request

from contact_indexer.jobs import JobStore
from contact_indexer.services.search import SearchService


def get_search_service(request: Request) -> SearchService:
    return request.app.state.search_service


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


SearchDep = Annotated[SearchService, Depends(get_search_service)]
JobStoreDep = Annotated[JobStore, Depends(get_job_store)]
