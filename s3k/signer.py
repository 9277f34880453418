"""
Provides the AWS Signature Version 4 request signer used by s3k.

SigningRequest holds the parts of an HTTP request that are covered by a
signature. RequestSigner builds the canonical request for it and adds the
signature either as an Authorization header or as query string parameters.

"""

# Licensed under the MIT License:
# http://opensource.org/licenses/MIT


import hashlib
import logging
import re
from datetime import datetime, timezone
from urllib.parse import parse_qsl, quote, unquote, urlencode

from .signingkey import SigningKey


log = logging.getLogger(__name__)

ALGORITHM = 'AWS4-HMAC-SHA256'
DEFAULT_SERVICE = 's3'
DEFAULT_REGION = 'us-east-1'
DEFAULT_EXPIRES = 86400
UNSIGNED_PAYLOAD = 'UNSIGNED-PAYLOAD'
TIMESTAMP_FORMAT = '%Y%m%dT%H%M%SZ'

# RFC 3986 unreserved characters, everything else is percent-encoded
UNRESERVED = '-_.~'

_uri_illegal_re = re.compile(r"[^0-9A-Za-z;,/?:@&=+$\-_.!~*'()#%]")
_whitespace_re = re.compile(r'\s+')


def get_header(headers, name):
    """Case-insensitive lookup of a header value in a plain dict."""
    name = name.lower()
    for hdr, val in headers.items():
        if hdr.lower() == name:
            return val
    return None


def has_header(headers, name):
    name = name.lower()
    return any(hdr.lower() == name for hdr in headers)


def remove_header(headers, name):
    name = name.lower()
    for hdr in [hdr for hdr in headers if hdr.lower() == name]:
        del headers[hdr]


def format_query(query):
    """
    Serialise a query dict of name -> list of values, keeping the dict order
    and encoding everything but the unreserved characters.

    """
    return urlencode(query, doseq=True, quote_via=quote, safe=UNRESERVED)


class SigningRequest:
    """
    The parts of an HTTP request covered by a version 4 signature.

    Attributes:
    host    -- value used for the Host header when headers lack one
    method  -- HTTP method
    path    -- raw path, optionally with a query string
    headers -- dict of the headers to sign. Signing adds to it in place.
    service -- service of the credential scope, s3 if not set
    region  -- region of the credential scope, us-east-1 if not set
    body    -- request payload, str or bytes. Only hashed for header signing
               when no x-amz-content-sha256 header is present.

    """

    def __init__(self, host=None, method='GET', path='/', headers=None,
                 service=None, region=None, body=None):
        self.host = host
        self.method = method
        self.path = path
        self.headers = headers if headers is not None else {}
        self.service = service
        self.region = region
        self.body = body

    def __repr__(self):
        return '<SigningRequest {} {}{}>'.format(self.method, self.host or '',
                                                 self.path)


class RequestSigner:
    """
    Sign a SigningRequest in place.

    >>> signer = RequestSigner(request, access_key_id, secret_access_key)
    >>> signer.sign()

    With sign_query=True the signature and its parameters are appended to the
    request path instead of being placed in an Authorization header.

    """

    def __init__(self, request, access_key_id, secret_access_key,
                 sign_query=False, logger=None):
        self.request = request
        self.access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self.sign_query = sign_query
        self.log = logger or log
        self.service = request.service or DEFAULT_SERVICE
        self.region = request.region or DEFAULT_REGION
        self.datetime = None
        self.path, self.query = self.parse_path(request.path or '/')

    @staticmethod
    def parse_path(path):
        """
        Split a raw path into the path part and a dict of
        name -> list of values, or None when there is no query string.

        """
        if _uri_illegal_re.search(path):
            path = quote(path, safe="/;,?:@&=+$-_.!~*'()#%")
        if '?' not in path:
            return path, None
        path, qs = path.split('?', 1)
        query = {}
        for name, val in parse_qsl(qs, keep_blank_values=True):
            query.setdefault(name, []).append(val)
        return path, query

    @property
    def credential_scope(self):
        return '{}/{}/{}/aws4_request'.format(self.datetime[:8], self.region,
                                              self.service)

    def prepare(self):
        """
        Add the headers or query parameters the signature depends on.

        """
        headers = self.request.headers
        if not has_header(headers, 'host'):
            headers['Host'] = self.request.host
        if self.sign_query:
            query = self.query = self.query if self.query is not None else {}
            if self.service == 's3' and 'X-Amz-Expires' not in query:
                query['X-Amz-Expires'] = [str(DEFAULT_EXPIRES)]
            if query.get('X-Amz-Date'):
                self.datetime = query['X-Amz-Date'][0]
            else:
                self.datetime = self.get_datetime()
                query['X-Amz-Date'] = [self.datetime]
            query['X-Amz-Algorithm'] = [ALGORITHM]
            query['X-Amz-Credential'] = [
                '{}/{}'.format(self.access_key_id, self.credential_scope)]
            query['X-Amz-SignedHeaders'] = [self.get_signed_headers()]
        else:
            if (self.service == 's3' and
                    not has_header(headers, 'x-amz-content-sha256')):
                headers['X-Amz-Content-Sha256'] = self.hash_payload()
            amz_date = get_header(headers, 'x-amz-date')
            if amz_date:
                self.datetime = amz_date
            else:
                self.datetime = self.get_datetime()
                headers['X-Amz-Date'] = self.datetime
            remove_header(headers, 'authorization')

    def sign(self):
        """
        Sign the request and return it. Updates request.headers and
        request.path.

        """
        self.prepare()
        self.log.debug('Signing %s %s as %s, signed headers: %s, query: %s',
                       self.request.method, self.path, self.access_key_id,
                       self.get_signed_headers(), self.sign_query)
        if self.sign_query:
            self.query['X-Amz-Signature'] = [self.get_signature()]
        else:
            self.request.headers['Authorization'] = self.get_auth_header()
        self.request.path = self.format_path()
        return self.request

    @staticmethod
    def get_datetime():
        return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)

    def hash_payload(self):
        body = self.request.body or b''
        if isinstance(body, str):
            body = body.encode('utf-8')
        return hashlib.sha256(body).hexdigest()

    def get_auth_header(self):
        return '{} Credential={}/{}, SignedHeaders={}, Signature={}'.format(
            ALGORITHM, self.access_key_id, self.credential_scope,
            self.get_signed_headers(), self.get_signature())

    def get_signature(self):
        key = SigningKey(self._secret_access_key, self.region, self.service,
                         self.datetime[:8])
        return key.sign(self.get_sig_string())

    def get_sig_string(self):
        """
        Generate the string to sign for the request.

        """
        hsh = hashlib.sha256(self.get_canonical_request().encode('utf-8'))
        sig_items = [ALGORITHM, self.datetime, self.credential_scope,
                     hsh.hexdigest()]
        return '\n'.join(sig_items)

    def get_canonical_request(self):
        """
        Create the Canonical Request string.

        """
        if self.service == 's3' and self.sign_query:
            payload_hash = UNSIGNED_PAYLOAD
        else:
            payload_hash = (
                get_header(self.request.headers, 'x-amz-content-sha256') or
                self.hash_payload())
        req_parts = [self.request.method.upper(),
                     self.amz_cano_path(self.path, self.service),
                     self.amz_cano_querystring(self.query, self.service),
                     self.get_canonical_headers(),
                     self.get_signed_headers(),
                     payload_hash]
        return '\n'.join(req_parts)

    def _grouped_headers(self):
        # Colliding upper/lowercase names are merged into a single header
        # with a lowercase name, values comma-joined
        grouped = {}
        for hdr, val in self.request.headers.items():
            hdr = hdr.strip().lower()
            if hdr == 'authorization':
                continue
            vals = grouped.setdefault(hdr, [])
            vals.append(self.amz_norm_whitespace(val))
        return grouped

    def get_canonical_headers(self):
        """
        Generate the Canonical Headers section of the Canonical Request.

        """
        grouped = self._grouped_headers()
        cano_headers = ''
        for hdr in sorted(grouped):
            val = ','.join(sorted(grouped[hdr]))
            cano_headers += '{}:{}\n'.format(hdr, val)
        return cano_headers

    def get_signed_headers(self):
        return ';'.join(sorted(self._grouped_headers()))

    def format_path(self):
        """Return the request path with the (re-encoded) query string."""
        if not self.query:
            return self.path
        query = {name: vals for name, vals in self.query.items() if name}
        return '?'.join((self.path, format_query(query)))

    @staticmethod
    def amz_cano_path(path, service=DEFAULT_SERVICE):
        """
        Generate the canonical path.

        S3 paths are decoded then encoded once per segment and are not
        normalised. Paths of other services have empty and dot segments
        removed and are encoded without decoding first.

        path -- request path, without query string

        """
        if path == '/':
            return path
        s3 = service == 's3'
        if not s3:
            path = re.sub('/{2,}', '/', path)
        pieces = []
        for piece in path.split('/'):
            if not s3 and piece == '..':
                if pieces:
                    pieces.pop()
            elif s3 or piece != '.':
                if s3:
                    piece = unquote_segment(piece)
                pieces.append(quote(piece, safe=UNRESERVED))
        path = '/'.join(pieces)
        if not path.startswith('/'):
            path = '/' + path
        if s3:
            path = path.replace('%2F', '/')
        return path

    @staticmethod
    def amz_cano_querystring(query, service=DEFAULT_SERVICE):
        """
        Format a parsed query as a canonical query string.

        query -- dict of name -> list of values, or None

        """
        if not query:
            return ''
        encoded = {}
        for name, vals in query.items():
            if not name:
                continue
            if service == 's3':
                vals = vals[:1]
            encoded[quote(name, safe=UNRESERVED)] = vals
        qs_strings = []
        for name in sorted(encoded):
            for val in sorted(quote(val, safe=UNRESERVED)
                              for val in encoded[name]):
                qs_strings.append('='.join([name, val]))
        return '&'.join(qs_strings)

    @staticmethod
    def amz_norm_whitespace(text):
        """
        Trim text and replace runs of whitespace with a single space.

        """
        if text is None:
            return ''
        return _whitespace_re.sub(' ', str(text).strip())


def unquote_segment(piece):
    return unquote(piece.replace('+', ' '))
