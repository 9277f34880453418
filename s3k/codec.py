"""
Parse and regenerate AWS Signature Version 4 authorization material.

Parsing
-------
.. code-block:: python

    >>> from s3k import codec
    >>> material = codec.parse_authorization_header(
    ...     'AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20150830/us-east-1/s3/'
    ...     'aws4_request, SignedHeaders=host;x-amz-date, Signature=abcd1234')
    >>> material.access_key_id, material.signed_headers
    ('AKIDEXAMPLE', ['host', 'x-amz-date'])

Verifying
---------
A server authenticating S3-style requests re-signs the inbound request with
the secret it holds for ``material.access_key_id`` and compares signatures:

.. code-block:: python

    >>> codec.verify_header_signature(request, secret_access_key)
    True

Only version 4 signatures are computed. Version 1 to 3 material is
recognised and rejected with UnsupportedSigningVersion.

"""

# Licensed under the MIT License:
# http://opensource.org/licenses/MIT


import hmac
import logging
import re
from collections import namedtuple
from collections.abc import Mapping
from datetime import datetime, timezone
from urllib.parse import parse_qsl, urlsplit

from requests.structures import CaseInsensitiveDict

from .exceptions import (MalformedAuthorization, MissingAuthorization,
                         UnknownSigningType, UnsupportedSigningVersion)
from .signer import (DEFAULT_SERVICE, TIMESTAMP_FORMAT, RequestSigner,
                     SigningRequest, format_query)
from .signingkey import TERMINATOR


log = logging.getLogger(__name__)

UNSUPPORTED_VERSIONS = {'AWS': 'v2', 'AWS2': 'v2', 'AWS3': 'v3'}
SIGNATURE_PARAMS = ('X-Amz-Signature', 'Signature')

_type_re = re.compile(r'^([^ -]+)(?:-[^ ]+)?')
_credential_re = re.compile(r'Credential=([^,]+)')
_signed_headers_re = re.compile(r'SignedHeaders=([^,]+)')
_signature_re = re.compile(r'Signature=([^,]+)')


class Credential(namedtuple('Credential',
                            'access_key_id date region service terminator')):
    """
    A parsed ``id/date/region/service/aws4_request`` credential string.

    """

    __slots__ = ()

    @classmethod
    def parse(cls, text):
        parts = text.split('/')
        if len(parts) != 5 or parts[4] != TERMINATOR:
            raise MalformedAuthorization(
                'Bad AWS v4 credential: {}'.format(text))
        return cls(*parts)

    @property
    def scope(self):
        return '/'.join(self[1:])

    def __str__(self):
        return '/'.join(self)


class AuthorizationMaterial(namedtuple(
        'AuthorizationMaterial',
        'version type credential access_key_id signed_headers signature '
        'date expires', defaults=(None, None))):
    """
    Authorization fields parsed from a header or a query string.

    date and expires are only read from query strings, and only on a best
    effort basis. Expiry is not enforced.

    """

    __slots__ = ()

    @property
    def scope(self):
        """The credential as a Credential. Raises MalformedAuthorization."""
        return Credential.parse(self.credential)


def parse_authorization_header(authorization, logger=None):
    """
    Parse the value of an Authorization HTTP header.

    Raises MissingAuthorization, UnsupportedSigningVersion,
    UnknownSigningType or MalformedAuthorization.

    """
    logger = logger or log
    if not authorization:
        raise MissingAuthorization('No authorization header')
    match = _type_re.match(authorization)
    if not match:
        raise UnknownSigningType('Unknown authorization header')
    auth_type, version = match.group(0), match.group(1)
    logger.debug('Authorization header type: %s, version: %s',
                 auth_type, version)
    if version in UNSUPPORTED_VERSIONS:
        raise UnsupportedSigningVersion(
            'AWS {} authorization header not supported'.format(
                UNSUPPORTED_VERSIONS[version]))
    if version != 'AWS4':
        raise UnknownSigningType(
            'Unknown authorization header type: {}'.format(auth_type))
    credential = _credential_re.search(authorization)
    signed_headers = _signed_headers_re.search(authorization)
    signature = _signature_re.search(authorization)
    if not credential or not signed_headers or not signature:
        raise MalformedAuthorization('Bad AWS v4 authorization header')
    credential = credential.group(1).strip()
    return AuthorizationMaterial(
        version=version,
        type=auth_type,
        credential=credential,
        access_key_id=credential.split('/')[0],
        signed_headers=signed_headers.group(1).strip().split(';'),
        signature=signature.group(1).strip())


def normalize_query(query):
    """
    Return query as a dict of str -> str.

    query is either a raw query string, with or without the leading '?', or
    an already decoded mapping whose values are strings or lists of strings.
    The first value of a repeated parameter wins.

    """
    if query is None:
        return {}
    if isinstance(query, Mapping):
        params = {}
        for name, val in query.items():
            if isinstance(val, (list, tuple)):
                if not val:
                    continue
                val = val[0]
            params[name] = val
        return params
    if isinstance(query, bytes):
        query = query.decode('utf-8')
    params = {}
    for name, val in parse_qsl(query.lstrip('?'), keep_blank_values=True):
        params.setdefault(name, val)
    return params


def _parse_amz_date(value):
    if not value:
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(
            tzinfo=timezone.utc)
    except ValueError:
        return None


def _parse_expires(value):
    if value is None or not str(value).isdigit():
        return None
    return int(value)


def parse_authorization_query_string(query, logger=None):
    """
    Parse the authorization parameters of a presigned URL query string.

    query -- raw query string or decoded mapping, see normalize_query()

    Raises the same errors as parse_authorization_header().

    """
    logger = logger or log
    query = normalize_query(query)
    auth_type = query.get('X-Amz-Algorithm')
    if not auth_type:
        raise MissingAuthorization('No authorization query string')
    version = auth_type.split('-')[0]
    logger.debug('Authorization query string type: %s, version: %s',
                 auth_type, version)
    if version in UNSUPPORTED_VERSIONS:
        raise UnsupportedSigningVersion(
            'AWS {} authorization query string not supported'.format(
                UNSUPPORTED_VERSIONS[version]))
    if version != 'AWS4':
        raise UnknownSigningType(
            'Unknown authorization query string type: {}'.format(auth_type))
    credential = query.get('X-Amz-Credential')
    signed_headers = query.get('X-Amz-SignedHeaders')
    signature = query.get('X-Amz-Signature') or query.get('Signature')
    if not credential or not signed_headers or not signature:
        raise MalformedAuthorization('Bad AWS v4 authorization query string')
    access_key_id = query.get('AWSAccessKeyId') or credential.split('/')[0]
    return AuthorizationMaterial(
        version=version,
        type=auth_type,
        credential=credential,
        access_key_id=access_key_id,
        signed_headers=signed_headers.split(';'),
        signature=signature,
        date=_parse_amz_date(query.get('X-Amz-Date')),
        expires=_parse_expires(query.get('X-Amz-Expires')))


def _split_request_url(request):
    """Return (host, path_with_query) for an inbound request."""
    headers = CaseInsensitiveDict(request.headers or {})
    url = urlsplit(request.url or '/')
    host = headers.get('host') or url.netloc
    path = url.path or '/'
    if url.query:
        path = '?'.join((path, url.query))
    return host, path


def _signing_request(request, host, path, signed_header_names, region,
                     service):
    headers = CaseInsensitiveDict(request.headers or {})
    signed = {}
    for name in signed_header_names:
        val = headers.get(name)
        if val is None and name.lower() == 'host':
            val = host
        signed[name] = val
    return SigningRequest(host=host, method=request.method, path=path,
                          headers=signed, service=service, region=region)


def sign_headers_from_request(request, signed_header_names, access_key_id,
                              secret_access_key, region=None, service=None,
                              logger=None):
    """
    Re-sign an inbound request over the named headers, Authorization header
    style.

    request -- object with method, url and headers attributes. url may be a
               raw path or an absolute URL.

    Headers named but absent from the request are signed with an empty
    value, so the resulting signature will not match the client's.

    """
    host, path = _split_request_url(request)
    signing_request = _signing_request(request, host, path,
                                       signed_header_names, region, service)
    return sign_headers(signing_request, access_key_id, secret_access_key,
                        logger=logger)


def sign_headers(signing_request, access_key_id, secret_access_key,
                 logger=None):
    """
    Sign signing_request with an Authorization header.

    Mutates and returns signing_request.headers: Authorization is added, as
    well as X-Amz-Date when absent and, for S3, X-Amz-Content-Sha256.

    """
    if not signing_request.service:
        signing_request.service = DEFAULT_SERVICE
    RequestSigner(signing_request, access_key_id, secret_access_key,
                  logger=logger).sign()
    return signing_request.headers


def sign_query_string_from_request(request, signed_header_names,
                                   access_key_id, secret_access_key,
                                   region=None, service=None, logger=None):
    """
    Re-sign an inbound presigned request, query string style.

    Any signature already present in the query string is dropped before
    signing. Returns the signed query parameters as a dict.

    """
    host, path = _split_request_url(request)
    path, query = RequestSigner.parse_path(path)
    if query is not None:
        for name in SIGNATURE_PARAMS:
            query.pop(name, None)
        path = '?'.join((path, format_query(query)))
    signing_request = _signing_request(request, host, path,
                                       signed_header_names, region, service)
    return sign_query_string(signing_request, access_key_id,
                             secret_access_key, logger=logger)


def sign_query_string(signing_request, access_key_id, secret_access_key,
                      logger=None):
    """
    Sign signing_request in its query string and return the query parameters
    as a dict.

    """
    path = sign_path(signing_request, access_key_id, secret_access_key,
                     logger=logger)
    return normalize_query(urlsplit(path).query)


def sign_path(signing_request, access_key_id, secret_access_key, logger=None):
    """
    Sign signing_request in its query string and return the signed path.

    X-Amz-Date is reused from the query string when present, so signing the
    same path twice gives the same signature.

    """
    if not signing_request.service:
        signing_request.service = DEFAULT_SERVICE
    RequestSigner(signing_request, access_key_id, secret_access_key,
                  sign_query=True, logger=logger).sign()
    return signing_request.path


def verify_header_signature(request, secret_access_key, logger=None):
    """
    Check the Authorization header of an inbound request against
    secret_access_key.

    Returns True when the signatures match. Parse errors propagate.

    """
    headers = CaseInsensitiveDict(request.headers or {})
    material = parse_authorization_header(headers.get('authorization'),
                                          logger=logger)
    scope = material.scope
    signed = sign_headers_from_request(
        request, material.signed_headers, material.access_key_id,
        secret_access_key, region=scope.region, service=scope.service,
        logger=logger)
    expected = parse_authorization_header(signed['Authorization'])
    return hmac.compare_digest(expected.signature.encode('utf-8'),
                               material.signature.encode('utf-8'))


def verify_query_signature(request, secret_access_key, logger=None):
    """
    Check the presigned query string of an inbound request against
    secret_access_key.

    Returns True when the signatures match. Parse errors propagate.

    """
    material = parse_authorization_query_string(
        urlsplit(request.url or '').query, logger=logger)
    scope = material.scope
    signed = sign_query_string_from_request(
        request, material.signed_headers, material.access_key_id,
        secret_access_key, region=scope.region, service=scope.service,
        logger=logger)
    return hmac.compare_digest(signed['X-Amz-Signature'].encode('utf-8'),
                               material.signature.encode('utf-8'))
