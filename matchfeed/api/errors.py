"""Error payloads of the read-side API."""

from typing import Optional

from flask import jsonify


class ApiError(Exception):
    """An expected failure mapped to a status code and a typed JSON body."""

    def __init__(self, status: int, code: str, error: str, message: Optional[str] = None):
        super().__init__(error)
        self.status = status
        self.code = code
        self.error = error
        self.message = message

    def to_dict(self) -> dict:
        body = {'code': self.code, 'error': self.error}
        if self.message:
            body['message'] = self.message
        return body


def cache_not_ready() -> ApiError:
    return ApiError(
        503,
        'CACHE_NOT_READY',
        'Matches data not available yet',
        'Cache is being initialized, please try again shortly',
    )


def region_not_found(region: str) -> ApiError:
    return ApiError(404, 'REGION_NOT_FOUND', 'Region not found.', f"No competitions for region '{region}'")


def competition_not_found(region: str, competition: str) -> ApiError:
    return ApiError(
        404,
        'COMPETITION_NOT_FOUND',
        'Competition not found',
        f"No competition '{competition}' in region '{region}'",
    )


def invalid_parameter(name: str, value: str, expected: str) -> ApiError:
    return ApiError(400, 'INVALID_PARAMETER', f"Invalid value for '{name}'", f"Got '{value}', expected {expected}")


def handle_api_error(error: ApiError):
    response = jsonify(error.to_dict())
    response.status_code = error.status
    if error.status == 503:
        response.headers['Retry-After'] = '30'
    return response
