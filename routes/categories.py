from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import or_

from models import Category
from schemas.api_models import CategoryDeleted, CategoryResponse
from schemas.validation import CategoryCreate, CategoryUpdate, parse_body
from utils.access_control import RequestContext, get_request_context, guarded_body, parse_id
from utils.error_handling import DuplicateName, log_operation_success
from utils.listing import ListParams
from utils.logging_config import logger

router = APIRouter()

DUPLICATE_CATEGORY = "Category name already exists"

SORT_COLUMNS = {"name": Category.name, "createdAt": Category.created_at}


def _ensure_unique_name(ctx: RequestContext, name: str, exclude_id: Optional[int] = None) -> None:
    query = ctx.db.query(Category).filter(Category.name == name)
    if exclude_id is not None:
        query = query.filter(Category.id != exclude_id)
    if query.first() is not None:
        logger.warning(f"Duplicate category name rejected: {name}")
        raise DuplicateName(DUPLICATE_CATEGORY)


@router.get("/categories", response_model=Union[CategoryResponse, List[CategoryResponse]])
def get_categories(
    row_id: Optional[str] = Query(None, alias="id"),
    params: ListParams = Depends(),
    ctx: RequestContext = Depends(get_request_context),
):
    if row_id is not None:
        category_id = parse_id(row_id)
        return ctx.get(Category, category_id, "Category not found")

    query = ctx.db.query(Category)
    if params.pattern:
        query = query.filter(or_(Category.name.ilike(params.pattern), Category.description.ilike(params.pattern)))
    return params.apply(query, SORT_COLUMNS, "createdAt").all()


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    data = parse_body(CategoryCreate, body)
    _ensure_unique_name(ctx, data.name)

    category = Category(name=data.name, description=data.description)
    with ctx.persist("create category", DuplicateName(DUPLICATE_CATEGORY)):
        ctx.db.add(category)
    ctx.db.refresh(category)

    log_operation_success("create category", f"{category.id} by {ctx.user_id}")
    return category


@router.put("/categories", response_model=CategoryResponse)
def update_category(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
    body: dict = Depends(guarded_body()),
):
    category_id = parse_id(row_id)
    data = parse_body(CategoryUpdate, body)
    category = ctx.get(Category, category_id, "Category not found")

    changes = data.updates()
    if "name" in changes:
        _ensure_unique_name(ctx, changes["name"], exclude_id=category.id)

    with ctx.persist("update category", DuplicateName(DUPLICATE_CATEGORY)):
        for field, value in changes.items():
            setattr(category, field, value)
    ctx.db.refresh(category)
    return category


@router.delete("/categories", response_model=CategoryDeleted)
def delete_category(
    row_id: Optional[str] = Query(None, alias="id"),
    ctx: RequestContext = Depends(get_request_context),
):
    category_id = parse_id(row_id)
    category = ctx.get(Category, category_id, "Category not found")
    deleted = CategoryResponse.model_validate(category)

    with ctx.persist("delete category"):
        ctx.db.delete(category)

    log_operation_success("delete category", f"{category_id} by {ctx.user_id}")
    return CategoryDeleted(message="Category deleted successfully", deleted=deleted)
