"""
Define functions/aliases for dependency injection
"""
from typing import Annotated, TypeAlias
from fastapi import Depends, Request

from api.content.services import ContentService


def get_content_service(request: Request) -> ContentService:
  """The service instance built by the lifespan handler"""
  service = getattr(request.app.state, "content_service", None)
  if service is None:
    raise RuntimeError("Content service is not available.")
  return service


ContentServiceDep: TypeAlias = Annotated[ContentService, Depends(get_content_service)]
