from fastapi import APIRouter, HTTPException, status
from sqlalchemy import delete, select

from coinmatrix.core.dependencies import DBDependency
from coinmatrix.core.responses import send_created, send_success
from coinmatrix.core.security import CurrentUser
from coinmatrix.db.models.bookmark import Bookmark
from coinmatrix.db.schemas.market import BookmarkCreate
from coinmatrix.db.session import dialect_insert

router = APIRouter(prefix="/bookmarks", tags=["Bookmarks"])


@router.get("")
async def list_bookmarks(current_user: CurrentUser, db: DBDependency):
    result = await db.execute(
        select(Bookmark.coin_id)
        .where(Bookmark.user_id == current_user.id)
        .order_by(Bookmark.id)
    )
    return send_success(data=list(result.scalars().all()))


@router.post("", status_code=status.HTTP_201_CREATED)
async def add_bookmark(
    payload: BookmarkCreate, current_user: CurrentUser, db: DBDependency
):
    stmt = (
        dialect_insert(db, Bookmark)
        .values(user_id=current_user.id, coin_id=payload.coin_id)
        .on_conflict_do_nothing(index_elements=["user_id", "coin_id"])
    )
    await db.execute(stmt)
    await db.commit()
    return send_created(message="Bookmark added successfully")


@router.delete("/{coin_id}")
async def remove_bookmark(coin_id: str, current_user: CurrentUser, db: DBDependency):
    result = await db.execute(
        delete(Bookmark).where(
            Bookmark.user_id == current_user.id, Bookmark.coin_id == coin_id
        )
    )
    if result.rowcount == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Bookmark not found."
        )
    await db.commit()
    return send_success(message="Bookmark removed successfully")
