from fastapi import APIRouter, Depends

from photowalk.dependencies import get_routing_gateway
from photowalk.schemas.route import RouteRequest
from photowalk.services.routing import RoutingGateway
from photowalk.utils.exceptions import AppException
from photowalk.utils.response import success_response
from photowalk.utils.result import Ok, ServiceError

router = APIRouter(prefix="/route", tags=["route"])


@router.post("")
async def get_route(payload: RouteRequest, gateway: RoutingGateway = Depends(get_routing_gateway)):
    result = await gateway.route(payload.start_address, payload.end_address)
    if isinstance(result, Ok):
        return success_response(route=result.value.to_json())
    if isinstance(result, ServiceError):
        raise AppException(result.message, status_code=500)
    raise AppException(result.message, status_code=400)
