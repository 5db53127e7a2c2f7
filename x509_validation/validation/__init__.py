"""
Certificate chain validation package.
"""
from .errors import (
    ValidationError, MalformedCertificateError, UnsupportedAlgorithmError, TrustStoreError
)
from .signature import (
    SignatureAlgorithm, SignatureVerifier, CryptographySignatureVerifier, verify_link
)
from .trust_store import TrustAnchorStore
from .name_matcher import match_name, certificate_names
from .certificate_checker import check_certificate
from .chain_orderer import OrderedPath, OrderingResult, order_chain
from .chain_validator import ChainValidator, validate

__all__ = [
    'ValidationError',
    'MalformedCertificateError',
    'UnsupportedAlgorithmError',
    'TrustStoreError',
    'SignatureAlgorithm',
    'SignatureVerifier',
    'CryptographySignatureVerifier',
    'verify_link',
    'TrustAnchorStore',
    'match_name',
    'certificate_names',
    'check_certificate',
    'OrderedPath',
    'OrderingResult',
    'order_chain',
    'ChainValidator',
    'validate'
]
