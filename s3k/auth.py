"""
Provides S3kAuth class for signing Requests HTTP requests to S3-compatible
endpoints with AWS Signature Version 4.

"""

# Licensed under the MIT License:
# http://opensource.org/licenses/MIT


from urllib.parse import urlsplit

from requests.auth import AuthBase

from .codec import sign_headers
from .signer import DEFAULT_REGION, DEFAULT_SERVICE, SigningRequest


class S3kAuth(AuthBase):
    """
    Requests authentication class signing requests with an Authorization
    header.

    Basic usage
    -----------

    >>> import requests
    >>> from s3k import S3kAuth
    >>> auth = S3kAuth('<ACCESS KEY ID>', '<SECRET ACCESS KEY>')
    >>> response = requests.get('http://localhost:9000/bucket', auth=auth)

    The signature produced is the one s3k.codec.verify_header_signature()
    checks on the receiving side.

    Class attributes
    ----------------

    S3kAuth.access_key_id -- the access key ID supplied to the instance
    S3kAuth.region        -- the region of the credential scope
    S3kAuth.service       -- the service of the credential scope
    S3kAuth.include_hdrs  -- set of header names to sign. 'x-amz-*' matches
                             every x-amz- header, '*' matches all headers.

    """

    default_include_headers = {'host', 'content-type', 'content-md5',
                               'range', 'x-amz-*'}

    def __init__(self, access_key_id, secret_access_key,
                 region=DEFAULT_REGION, service=DEFAULT_SERVICE,
                 include_hdrs=None):
        self.access_key_id = access_key_id
        self._secret_access_key = secret_access_key
        self.region = region
        self.service = service
        self.include_hdrs = set(self.default_include_headers)
        # non-iterables keep the default
        try:
            self.include_hdrs = {hdr.lower() for hdr in iter(include_hdrs)}
        except TypeError:
            pass

    def __call__(self, req):
        """
        Interface used by Requests module to apply authentication to HTTP
        requests.

        Add Authorization, X-Amz-Date and, for S3, X-Amz-Content-Sha256
        headers to the request. An X-Amz-Date header already on the request
        is kept.

        req -- Requests PreparedRequest object

        """
        if getattr(req, 'body', None) is not None:
            self.encode_body(req)
        url = urlsplit(req.url)
        path = url.path or '/'
        if url.query:
            path = '?'.join((path, url.query))
        headers = self.get_signing_headers(req, self.include_hdrs)
        signing_request = SigningRequest(host=url.netloc, method=req.method,
                                         path=path, headers=headers,
                                         service=self.service,
                                         region=self.region, body=req.body)
        signed = sign_headers(signing_request, self.access_key_id,
                              self._secret_access_key)
        for hdr in ('Authorization', 'X-Amz-Date', 'X-Amz-Content-Sha256'):
            if hdr in signed:
                req.headers[hdr] = signed[hdr]
        return req

    @staticmethod
    def get_signing_headers(req, include):
        """
        Select the request headers to sign.

        include -- header names, lower case, as for include_hdrs

        """
        headers = {}
        for hdr, val in req.headers.items():
            name = hdr.strip().lower()
            if (name in include or '*' in include or
                    ('x-amz-*' in include and name.startswith('x-amz-'))):
                headers[hdr] = val
        return headers

    @staticmethod
    def encode_body(req):
        """
        Encode body of request to bytes and update content-type if required.

        If the body of req is text then encode to the charset found in
        content-type header if present, otherwise UTF-8, or ASCII if
        content-type is application/x-www-form-urlencoded. If encoding to UTF-8
        then add charset to content-type. Modifies req directly, does not
        return a modified copy.

        req -- Requests PreparedRequest object

        """
        if isinstance(req.body, str):
            split = req.headers.get('content-type', 'text/plain').split(';')
            if len(split) == 2:
                ct, cs = split
                cs = cs.split('=')[1]
                req.body = req.body.encode(cs)
            else:
                ct = split[0]
                if (ct == 'application/x-www-form-urlencoded' or
                        'x-amz-' in ct):
                    req.body = req.body.encode()
                else:
                    req.body = req.body.encode('utf-8')
                    req.headers['content-type'] = ct + '; charset=utf-8'
