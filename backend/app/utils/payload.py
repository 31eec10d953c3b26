from typing import Any, Dict

from starlette.requests import Request


async def read_json_object(request: Request) -> Dict[str, Any]:
    """Request body as a dict; empty, invalid or non-object JSON all read as {}."""
    try:
        data = await request.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}
