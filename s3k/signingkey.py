"""
Provides SigningKey class for deriving AWS Signature Version 4 signing keys.

"""

# Licensed under the MIT License:
# http://opensource.org/licenses/MIT


import hmac
import hashlib
from datetime import datetime, timezone


TERMINATOR = 'aws4_request'


class SigningKey:
    """
    Version 4 signing key, scoped to a date, region and service.

    The secret access key is not stored in the object after instantiation.

    Methods:
    generate_key() -- Derive the signing key bytes.
    sign_sha256()  -- Generate SHA256 HMAC digest, encoding message to bytes
                      if required.
    sign()         -- Hex signature of a string-to-sign.

    Attributes:
    region   -- region the key is scoped for
    service  -- service the key is scoped for
    amz_date -- 8-digit date the key is scoped for
    scope    -- the date/region/service/aws4_request credential scope
    key      -- the signing key itself, as bytes

    """

    def __init__(self, secret_access_key, region, service, date=None):
        """
        >>> SigningKey(secret_access_key, region, service[, date])

        secret_access_key -- The secret shared with the client
        region            -- Region of the scope, e.g. us-east-1
        service           -- Service of the scope, e.g. s3
        date              -- 8-digit date of the form YYYYMMDD. The current
                             UTC date is used if not supplied.

        """
        self.region = region
        self.service = service
        self.amz_date = date or datetime.now(timezone.utc).strftime('%Y%m%d')
        self.scope = '{}/{}/{}/{}'.format(self.amz_date,
                                          self.region,
                                          self.service,
                                          TERMINATOR)
        self.key = self.generate_key(secret_access_key, self.region,
                                     self.service, self.amz_date)

    @classmethod
    def generate_key(cls, secret_access_key, region, service, amz_date,
                     intermediate=False):
        """
        Generate the signing key as bytes.

        If intermediate is set to True, returns a 4-tuple containing the key
        and the intermediate keys:

        ( signing_key, date_key, region_key, service_key )

        """
        init_key = ('AWS4' + secret_access_key).encode('utf-8')
        date_key = cls.sign_sha256(init_key, amz_date)
        region_key = cls.sign_sha256(date_key, region)
        service_key = cls.sign_sha256(region_key, service)
        key = cls.sign_sha256(service_key, TERMINATOR)
        if intermediate:
            return (key, date_key, region_key, service_key)
        return key

    @staticmethod
    def sign_sha256(key, msg):
        """
        Generate an SHA256 HMAC, encoding msg to UTF-8 if not
        already encoded.

        key -- signing key. bytes.
        msg -- message to sign. str or bytes.

        """
        if isinstance(msg, str):
            msg = msg.encode('utf-8')
        return hmac.new(key, msg, hashlib.sha256).digest()

    def sign(self, string_to_sign):
        """Return the hex encoded signature of string_to_sign."""
        if isinstance(string_to_sign, str):
            string_to_sign = string_to_sign.encode('utf-8')
        return hmac.new(self.key, string_to_sign, hashlib.sha256).hexdigest()
