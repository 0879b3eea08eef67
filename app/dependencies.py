"""
SafeMed - Request dependencies
"""

from fastapi import Request

from app.services.emr_gateway import EMRGateway


def get_gateway(request: Request) -> EMRGateway:
    """The gateway (and its mock store) created at startup"""
    return request.app.state.gateway
