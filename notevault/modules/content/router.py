"""
Content Endpoints

- GET /api/v1/categories    - Categories with note counts
- GET /api/v1/universities  - Universities
- GET /sitemap.xml          - Public sitemap (mounted at the root)
"""
from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.database import get_db
from notevault.modules.content.schemas import CategoryResponse, UniversityResponse
from notevault.modules.content.service import ContentService

router = APIRouter(tags=["Content"])
sitemap_router = APIRouter(tags=["Content"])


async def get_content_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ContentService:
    return ContentService(db)


ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]


@router.get("/categories", response_model=list[CategoryResponse], summary="Categories")
async def list_categories(service: ContentServiceDep) -> list[CategoryResponse]:
    rows = await service.list_categories()
    return [
        CategoryResponse(
            id=category.id,
            name=category.name,
            slug=category.slug,
            icon=category.icon,
            note_count=count,
        )
        for category, count in rows
    ]


@router.get("/universities", response_model=list[UniversityResponse], summary="Universities")
async def list_universities(service: ContentServiceDep) -> list[UniversityResponse]:
    universities = await service.list_universities()
    return [UniversityResponse.model_validate(u) for u in universities]


@sitemap_router.get("/sitemap.xml", include_in_schema=False)
async def sitemap(service: ContentServiceDep) -> Response:
    content = await service.build_sitemap()
    return Response(
        content=content,
        media_type="application/xml",
        headers={"Cache-Control": "public, max-age=3600"},
    )
