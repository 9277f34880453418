"""
Exceptions raised by s3k.

The authorization errors map onto the S3 error responses a server should
send back when rejecting a request: each carries an HTTP status code and an
S3 error code.

"""

# Licensed under the MIT License:
# http://opensource.org/licenses/MIT


class S3kError(Exception):
    """Base class for all s3k errors."""

    status_code = 400
    code = 'InvalidRequest'


class AuthorizationError(S3kError):
    """Inbound authorization material could not be used."""


class MissingAuthorization(AuthorizationError):
    """No Authorization header or X-Amz-Algorithm query parameter."""

    status_code = 403
    code = 'AccessDenied'


class UnsupportedSigningVersion(AuthorizationError):
    """Signing scheme is recognised but not supported (AWS v1, v2, v3)."""


class UnknownSigningType(AuthorizationError):
    """Signing scheme is not recognised at all."""

    code = 'InvalidArgument'


class MalformedAuthorization(AuthorizationError):
    """AWS v4 scheme with missing or unparsable sub-fields."""

    code = 'AuthorizationHeaderMalformed'
