"""Authentication and authorization utilities"""
from fastapi import HTTPException
from typing import Optional, Union


def check_not_found(item, resource_name: str = "Resource", resource_id: Optional[Union[int, str]] = None) -> None:

    if not item:
        if resource_id:
            raise HTTPException(
                status_code=404,
                detail=f"{resource_name} with id {resource_id} not found"
            )
        raise HTTPException(status_code=404, detail=f"{resource_name} not found")


def check_session_owner(session, current_user) -> None:

    if session.operator_id is not None and session.operator_id != int(current_user.id):
        raise HTTPException(
            status_code=403,
            detail="Forbidden: this conversion was opened by another operator"
        )
