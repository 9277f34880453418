#!/usr/bin/env python
# coding: utf-8

import unittest
from types import SimpleNamespace

import requests

from s3k import S3kAuth, codec


def ss(l):
  '''return a sorted set of a sortable thing'''
  return set(sorted(l))

class S3kAuth_Header_Test(unittest.TestCase):
  _default_headers_sorted_set = ss(['content-md5', 'content-type', 'host',
                                    'range', 'x-amz-*'])

  def test_expected_default_headers(self):
    self.assertIsInstance(S3kAuth.default_include_headers, set)
    self.assertSetEqual(ss(S3kAuth.default_include_headers), self._default_headers_sorted_set)

  def test_base_instantiation(self):
    auth = S3kAuth('access', 'secret')
    self.assertEqual(auth.access_key_id, 'access')
    self.assertEqual(auth.region, 'us-east-1')
    self.assertEqual(auth.service, 's3')
    self.assertEqual(auth.include_hdrs, self._default_headers_sorted_set)

  def test_override_default_headers_to_empty(self):
    # ignores the value because '7' isn't an iterable.
    auth = S3kAuth('access', 'secret', include_hdrs=7)
    self.assertEqual(auth.include_hdrs, self._default_headers_sorted_set)

    # ignores the value because 'None' isn't an iterable.
    auth = S3kAuth('access', 'secret', include_hdrs=None)
    self.assertEqual(auth.include_hdrs, self._default_headers_sorted_set)

    # uses the value because [] is iterable
    auth = S3kAuth('access', 'secret', include_hdrs=[])
    self.assertEqual(len(auth.include_hdrs), 0)

  def test_override_default_headers_to_weird(self):
    # this is iterable.
    auth = S3kAuth('access', 'secret', include_hdrs='aabb')
    self.assertEqual(auth.include_hdrs, ss(['a', 'b']))

  def test_override_default_headers_to_set(self):
    _expected_set = {'hello', 'world', 'foo'}

    auth = S3kAuth('access', 'secret', include_hdrs=('hello', 'World', 'hello', 'foo'))
    self.assertSetEqual(auth.include_hdrs, _expected_set)

    auth = S3kAuth('access', 'secret', include_hdrs=['hello', 'world', 'hello', 'foo'])
    self.assertSetEqual(auth.include_hdrs, _expected_set)


class S3kAuth_EncodeBody_Test(unittest.TestCase):

    def setUp(self):
        self.req = SimpleNamespace()
        self.req.body = ''
        self.req.headers = {}

    def test_encode_body_str_to_bytes(self):
        self.req.body = 'hello'
        S3kAuth.encode_body(self.req)
        self.assertEqual(self.req.body, b'\x68\x65\x6c\x6c\x6f')
        expected = 'text/plain; charset=utf-8'
        self.assertEqual(self.req.headers['content-type'], expected)

    def test_encode_body_utf8_string_to_bytes(self):
        self.req.body = '☃'
        S3kAuth.encode_body(self.req)
        self.assertEqual(self.req.body, b'\xe2\x98\x83')

    def test_encode_body_charset(self):
        self.req.body = 'é'
        self.req.headers['content-type'] = 'text/plain; charset=latin-1'
        S3kAuth.encode_body(self.req)
        self.assertEqual(self.req.body, b'\xe9')

    def test_encode_body_bytes(self):
        text = b'hello'
        self.req.body = text
        S3kAuth.encode_body(self.req)
        self.assertEqual(self.req.body, text)
        self.assertEqual(self.req.headers, {})


class S3kAuth_Sign_Test(unittest.TestCase):

    url = 'http://localhost:9000/bucket/bob.txt'

    def prepare(self, method='GET', url=None, **kwargs):
        req = requests.Request(method, url or self.url, **kwargs)
        return req.prepare()

    def test_adds_signing_headers(self):
        req = S3kAuth('AKID', 'secret')(self.prepare())
        self.assertIn('Authorization', req.headers)
        self.assertRegex(req.headers['X-Amz-Date'], r'^\d{8}T\d{6}Z$')
        self.assertEqual(req.headers['X-Amz-Content-Sha256'],
                         'e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca'
                         '495991b7852b855')
        material = codec.parse_authorization_header(
            req.headers['Authorization'])
        self.assertEqual(material.access_key_id, 'AKID')
        self.assertEqual(material.signed_headers,
                         ['host', 'x-amz-content-sha256', 'x-amz-date'])
        # requests sets the Host header itself
        self.assertNotIn('Host', req.headers)

    def test_keeps_existing_date(self):
        req = self.prepare(headers={'X-Amz-Date': '20130524T000000Z'})
        req = S3kAuth('AKID', 'secret')(req)
        self.assertEqual(req.headers['X-Amz-Date'], '20130524T000000Z')
        self.assertEqual(codec.parse_authorization_header(
            req.headers['Authorization']).scope.date, '20130524')

    def test_only_included_headers_signed(self):
        req = self.prepare('PUT', data=b'OMG, some bob content!\n',
                           headers={'Content-Type': 'text/plain',
                                    'X-Amz-Meta-Owner': 'bob',
                                    'X-Custom': 'not signed'})
        req = S3kAuth('AKID', 'secret')(req)
        material = codec.parse_authorization_header(
            req.headers['Authorization'])
        self.assertEqual(material.signed_headers,
                         ['content-type', 'host', 'x-amz-content-sha256',
                          'x-amz-date', 'x-amz-meta-owner'])

    def test_verify_signed_request(self):
        req = self.prepare('PUT', url=self.url + '?acl', data='hello')
        req = S3kAuth('AKID', 'secret', region='eu-west-1')(req)
        self.assertTrue(codec.verify_header_signature(req, 'secret'))
        self.assertFalse(codec.verify_header_signature(req, 'wrong'))
        req.headers['X-Amz-Content-Sha256'] = '0' * 64
        self.assertFalse(codec.verify_header_signature(req, 'secret'))


if __name__ == '__main__':
    unittest.main()
