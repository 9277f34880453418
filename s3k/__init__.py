"""
Thin client for S3-compatible object stores, with an AWS Signature Version 4
codec to authenticate S3-style requests.

Features
--------
* Object store facade over boto3 injecting a default bucket, key prefix and
  listing delimiter
* Parsing of version 4 Authorization headers and presigned query strings
* Re-signing of inbound requests, header or query string style, to verify
  client signatures
* Requests authentication class using the same signer

Installation
------------
Install via pip:

.. code-block:: bash

    $ pip install s3k

s3k requires boto3 and the Requests_ library.

.. _Requests: https://github.com/psf/requests

Object store
------------
.. code-block:: python

    >>> from s3k import S3k
    >>> s3 = S3k('http://localhost:9000', '<ACCESS KEY ID>',
    ...          '<SECRET ACCESS KEY>', bucket='my-bucket', prefix='app/')
    >>> s3.put_object(Key='bob.txt', Body=b'OMG, some bob content!')
    >>> s3.get_object(Key='bob.txt')['Body']
    b'OMG, some bob content!'

``S3k.from_config()`` takes a mapping with the ``endpoint``, ``accessKeyId``,
``secretAccessKey``, ``bucket``, ``prefix`` and ``delimiter`` keys,
``S3k.from_env()`` reads the same settings from ``S3K_*`` environment
variables.

Errors raised by the service are botocore ``ClientError`` exceptions and are
passed through untouched. No retries are attempted.

Request authentication
----------------------
.. code-block:: python

    >>> from s3k import codec
    >>> material = codec.parse_authorization_header(
    ...     request.headers['Authorization'])
    >>> secret = lookup_secret(material.access_key_id)
    >>> codec.verify_header_signature(request, secret)
    True

Parse failures raise ``MissingAuthorization``, ``UnsupportedSigningVersion``,
``UnknownSigningType`` or ``MalformedAuthorization``. Each carries the
``status_code`` and S3 error ``code`` to answer with.

Multi-threading / processing
----------------------------
The codec functions keep no state: they only modify the headers mapping and
path of the SigningRequest passed to them. ``S3kAuth`` instances can be
shared between threads.

Unsupported features / todo
---------------------------
* Presigned URL expiry (``X-Amz-Expires``) is parsed but not enforced
* S3 chunked uploads (``STREAMING-AWS4-HMAC-SHA256-PAYLOAD``)

"""

# Licensed under the MIT License:
# http://opensource.org/licenses/MIT


from .auth import S3kAuth
from .client import S3k
from .codec import (AuthorizationMaterial, Credential,
                    parse_authorization_header,
                    parse_authorization_query_string, sign_headers,
                    sign_headers_from_request, sign_path, sign_query_string,
                    sign_query_string_from_request, verify_header_signature,
                    verify_query_signature)
from .exceptions import (AuthorizationError, MalformedAuthorization,
                         MissingAuthorization, S3kError, UnknownSigningType,
                         UnsupportedSigningVersion)
from .signer import RequestSigner, SigningRequest
from .signingkey import SigningKey

__version__ = '0.1'
