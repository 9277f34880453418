"""
Provides the S3k object store facade.

S3k forwards bucket and object operations to a boto3 S3 client, filling in
the bucket, key prefix and delimiter it was configured with. Parameters and
responses are the boto3 ones, see:
https://boto3.amazonaws.com/v1/documentation/api/latest/reference/services/s3.html

Errors from the service (botocore.exceptions.ClientError, carrying the HTTP
status code and an error code such as NoSuchKey) are not caught.

"""

# Licensed under the MIT License:
# http://opensource.org/licenses/MIT


import io
import logging
import os

import boto3
from botocore.client import Config


log = logging.getLogger(__name__)

# config keys as found in JSON config files -> constructor arguments
CONFIG_KEYS = {
    'endpoint': 'endpoint',
    'accessKeyId': 'access_key_id',
    'secretAccessKey': 'secret_access_key',
    'bucket': 'bucket',
    'prefix': 'prefix',
    'delimiter': 'delimiter',
    'region': 'region',
}
ENV_PREFIX = 'S3K_'


class S3k:
    """
    Object store facade.

    >>> s3 = S3k('http://localhost:9000', '<ACCESS KEY ID>',
    ...          '<SECRET ACCESS KEY>', bucket='my-bucket', prefix='app/')
    >>> s3.put_object(Key='bob.txt', Body=b'some bob content')
    >>> s3.get_object(Key='bob.txt')['Body']
    b'some bob content'

    Attributes:
    endpoint      -- endpoint URL of the S3-compatible service
    access_key_id -- access key ID used by the client
    bucket        -- default bucket, used when no Bucket parameter is given
    prefix        -- prepended to every Key and to the Prefix of listings
    delimiter     -- default Delimiter for listings

    """

    def __init__(self, endpoint, access_key_id, secret_access_key,
                 bucket=None, prefix=None, delimiter=None, region=None,
                 client=None, logger=None):
        if not endpoint or not access_key_id or not secret_access_key:
            raise ValueError('S3k should be created with at least those '
                             'mandatory options: endpoint, access_key_id and '
                             'secret_access_key')
        self.endpoint = endpoint
        self.access_key_id = access_key_id
        self.bucket = bucket or None
        self.prefix = prefix or None
        self.delimiter = delimiter or None
        self.region = region or None
        self.log = logger or log
        if client is None:
            client = boto3.client(
                's3',
                endpoint_url=endpoint,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name=self.region,
                config=Config(signature_version='s3v4'),
            )
        self._s3 = client

    @classmethod
    def from_config(cls, config, **kwargs):
        """
        Create an instance from a config mapping.

        Both the camelCase keys of JSON config files (accessKeyId,
        secretAccessKey, ...) and the constructor argument names are
        accepted. Unknown keys are ignored.

        """
        options = dict.fromkeys(('endpoint', 'access_key_id',
                                 'secret_access_key'))
        for key, val in config.items():
            if key in CONFIG_KEYS:
                options[CONFIG_KEYS[key]] = val
            elif key in CONFIG_KEYS.values():
                options[key] = val
        options.update(kwargs)
        return cls(**options)

    @classmethod
    def from_env(cls, environ=None, **kwargs):
        """
        Create an instance from S3K_ENDPOINT, S3K_ACCESS_KEY_ID,
        S3K_SECRET_ACCESS_KEY, S3K_BUCKET, S3K_PREFIX, S3K_DELIMITER and
        S3K_REGION.

        """
        environ = os.environ if environ is None else environ
        config = {}
        for name in set(CONFIG_KEYS.values()):
            val = environ.get(ENV_PREFIX + name.upper())
            if val:
                config[name] = val
        return cls.from_config(config, **kwargs)

    def _bucket_params(self, params):
        params = dict(params)
        if self.bucket and not params.get('Bucket'):
            params['Bucket'] = self.bucket
        return params

    def _key_params(self, params):
        params = self._bucket_params(params)
        if self.prefix and 'Key' in params:
            params['Key'] = self.prefix + params['Key']
        return params

    # Bucket

    def get_bucket_acl(self, **params):
        """Bucket"""
        params = self._bucket_params(params)
        self.log.debug('get_bucket_acl %s', params.get('Bucket'))
        return self._s3.get_bucket_acl(**params)

    def put_bucket_acl(self, **params):
        """
        Bucket, and either ACL or AccessControlPolicy.

        ACL: private | public-read | public-read-write | authenticated-read

        AccessControlPolicy: dict with Grants (list of dicts with Grantee and
        Permission) and Owner, passed through as is.

        """
        params = self._bucket_params(params)
        self.log.debug('put_bucket_acl %s', params.get('Bucket'))
        return self._s3.put_bucket_acl(**params)

    set_bucket_acl = put_bucket_acl

    def list_objects(self, **params):
        """Bucket, Prefix, Delimiter"""
        params = self._bucket_params(params)
        if self.prefix:
            params['Prefix'] = self.prefix + params.get('Prefix', '')
        if self.delimiter and not params.get('Delimiter'):
            params['Delimiter'] = self.delimiter
        self.log.debug('list_objects %s prefix=%r', params.get('Bucket'),
                       params.get('Prefix'))
        return self._s3.list_objects(**params)

    # Objects

    def get_object(self, **params):
        """
        Bucket, Key

        The body is read in full: response['Body'] is bytes.

        """
        params = self._key_params(params)
        self.log.debug('get_object %s/%s', params.get('Bucket'),
                       params.get('Key'))
        response = self._s3.get_object(**params)
        response['Body'] = response['Body'].read()
        return response

    def get_object_stream(self, **params):
        """
        Bucket, Key

        Returns the streaming body, a file-like object.

        """
        params = self._key_params(params)
        self.log.debug('get_object_stream %s/%s', params.get('Bucket'),
                       params.get('Key'))
        return self._s3.get_object(**params)['Body']

    def put_object(self, **params):
        """
        Bucket, Key, Body

        Streams of unknown size are not supported, use upload() for those.

        """
        params = self._key_params(params)
        self.log.debug('put_object %s/%s', params.get('Bucket'),
                       params.get('Key'))
        return self._s3.put_object(**params)

    def upload(self, **params):
        """
        Bucket, Key, Body

        Works with file-like bodies of unknown size. Other parameters are
        passed to the transfer as ExtraArgs.

        """
        params = self._key_params(params)
        body = params.pop('Body', b'')
        if isinstance(body, str):
            body = body.encode('utf-8')
        if isinstance(body, (bytes, bytearray)):
            body = io.BytesIO(body)
        bucket = params.pop('Bucket', None)
        key = params.pop('Key', None)
        self.log.debug('upload %s/%s', bucket, key)
        return self._s3.upload_fileobj(body, bucket, key,
                                       ExtraArgs=params or None)

    def delete_object(self, **params):
        """Bucket, Key"""
        params = self._key_params(params)
        self.log.debug('delete_object %s/%s', params.get('Bucket'),
                       params.get('Key'))
        return self._s3.delete_object(**params)

    def delete_objects(self, **params):
        """
        Bucket, and Keys (or Key) as a list of keys.

        A single key is deleted with delete_object().

        """
        params = self._bucket_params(params)
        keys = params.pop('Keys', None)
        if keys is None:
            keys = params.get('Key')
        if not isinstance(keys, (list, tuple)):
            if keys is not None:
                params['Key'] = keys
            return self.delete_object(**params)
        params.pop('Key', None)
        prefix = self.prefix or ''
        params['Delete'] = {
            'Objects': [{'Key': prefix + key} for key in keys],
            'Quiet': False,
        }
        self.log.debug('delete_objects %s: %d keys', params.get('Bucket'),
                       len(keys))
        return self._s3.delete_objects(**params)
