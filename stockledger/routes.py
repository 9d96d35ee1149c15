from fastapi import APIRouter, Response

from .registries import Registry


def registry_router(prefix: str, registry: Registry, resettable: bool = False) -> APIRouter:
    """List/create/update/delete endpoints over one registry."""
    model = registry.model
    router = APIRouter(prefix=prefix)

    @router.get("")
    async def list_items():
        return registry.items

    @router.post("", status_code=201)
    async def add_item(payload: model):
        return await registry.add(payload)

    if resettable:
        @router.post("/reset")
        async def reset_items():
            return {"removed": await registry.reset_all()}

    @router.put("/{item_id}")
    async def update_item(item_id: str, payload: model):
        return await registry.update(item_id, payload)

    @router.delete("/{item_id}", status_code=204)
    async def delete_item(item_id: str):
        await registry.delete(item_id)
        return Response(status_code=204)

    return router
