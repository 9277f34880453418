#!/usr/bin/env python
# coding: utf-8

"""
Live service tests
------------------
This module contains tests against a live S3-compatible service. In order to
run these the endpoint, credentials and a scratch bucket need to be specified
in environment variables. This can be done with something like:

$ S3K_ENDPOINT='http://localhost:9000' S3K_ACCESS_KEY_ID='ID' \\
  S3K_SECRET_ACCESS_KEY='KEY' S3K_BUCKET='scratch' python test_live.py

If these variables are not provided the rest of the tests will still run but
the live service tests will be skipped.

The tests write and delete a few small objects in the bucket, under the
S3K_PREFIX prefix if set.
"""

import os
import unittest

import requests
from botocore.exceptions import ClientError

from s3k import S3k, S3kAuth


live_configured = all(os.getenv(name) for name in (
    'S3K_ENDPOINT', 'S3K_ACCESS_KEY_ID', 'S3K_SECRET_ACCESS_KEY',
    'S3K_BUCKET'))


@unittest.skipIf(not live_configured,
                 'S3K_ENDPOINT, S3K_ACCESS_KEY_ID, S3K_SECRET_ACCESS_KEY and'
                 ' S3K_BUCKET environment variables not set, skipping live'
                 ' service tests')
class S3k_LiveService_Test(unittest.TestCase):

    def setUp(self):
        self.s3 = S3k.from_env()

    def test_list_objects(self):
        response = self.s3.list_objects()
        self.assertEqual(response['ResponseMetadata']['HTTPStatusCode'], 200)

    def test_put_and_get(self):
        self.s3.put_object(Key='bob.txt', Body=b'OMG, some bob content!\n')
        response = self.s3.get_object(Key='bob.txt')
        self.assertEqual(response['Body'], b'OMG, some bob content!\n')

    def test_put_and_get_streamed(self):
        content = b'OMG, some bob content!\n' * 3000
        self.s3.put_object(Key='bob.txt', Body=content)
        stream = self.s3.get_object_stream(Key='bob.txt')
        received = b''.join(iter(lambda: stream.read(4096), b''))
        self.assertEqual(received, content)

    def test_upload(self):
        self.s3.upload(Key='bob3.txt', Body=b'OMG, uploaded bob content!\n')
        response = self.s3.get_object(Key='bob3.txt')
        self.assertEqual(response['Body'], b'OMG, uploaded bob content!\n')
        self.s3.delete_objects(Keys=['bob3.txt'])

    def test_put_get_delete_get(self):
        self.s3.put_object(Key='bob2.txt', Body=b'OMG, more bob content!\n')
        response = self.s3.get_object(Key='bob2.txt')
        self.assertEqual(response['Body'], b'OMG, more bob content!\n')
        self.s3.delete_object(Key='bob2.txt')
        with self.assertRaises(ClientError) as cm:
            self.s3.get_object(Key='bob2.txt')
        error = cm.exception.response
        self.assertEqual(error['ResponseMetadata']['HTTPStatusCode'], 404)
        self.assertEqual(error['Error']['Code'], 'NoSuchKey')

    def test_requests_auth(self):
        url = '{}/{}?list-type=2&max-keys=1'.format(
            os.environ['S3K_ENDPOINT'].rstrip('/'), os.environ['S3K_BUCKET'])
        auth = S3kAuth(os.environ['S3K_ACCESS_KEY_ID'],
                       os.environ['S3K_SECRET_ACCESS_KEY'],
                       region=os.getenv('S3K_REGION', 'us-east-1'))
        response = requests.get(url, auth=auth)
        response.connection.close()
        self.assertTrue(response.ok)


if __name__ == '__main__':
    unittest.main()
