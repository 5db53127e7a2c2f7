"""
Tests for the ChainValidator orchestration.
"""
import itertools
import unittest
from datetime import datetime
from unittest.mock import Mock

from cryptography import x509

from x509_validation import ChainValidator, Checks, FailedReason, TrustAnchorStore, validate
from x509_validation.models.validation import (
    EMPTY_CHAIN, EXPIRED, IN_FUTURE, INVALID_WILDCARD, NOT_ALLOWED_TO_SIGN, SELF_SIGNED,
    SIGNATURE_FAILED, UNKNOWN_CA, UNKNOWN_CRITICAL_EXTENSION
)
from x509_validation.validation.errors import UnsupportedAlgorithmError
from x509_validation.validation.signature import SignatureVerifier

from cert_factory import (
    CertificateFactory, NOW, build_certificate, generate_key, make_name
)

EXHAUSTIVE = Checks(check_exhaustive=True)


class TestChainValidator(unittest.TestCase):
    """Test cases for validating complete chains."""

    @classmethod
    def setUpClass(cls):
        """Create one root/intermediate/leaf hierarchy shared by the tests."""
        cls.factory = CertificateFactory()
        cls.root, cls.intermediate, cls.leaf = cls.factory.chain()
        cls.store = TrustAnchorStore([cls.root.cert])
        cls.canonical = [cls.leaf.cert, cls.intermediate.cert, cls.root.cert]

    def _validate(self, chain, host_name="www.example.com", checks=None, store=None, now=NOW):
        validator = ChainValidator(store if store is not None else self.store)
        return validator.validate(chain, now, host_name, checks)

    def test_empty_chain(self):
        """Test that an empty chain yields exactly EMPTY_CHAIN whatever the checks."""
        for flags in itertools.product([True, False], repeat=4):
            checks = Checks(*flags)
            self.assertEqual(self._validate([], checks=checks), [EMPTY_CHAIN])

    def test_valid_chain(self):
        """Test that a complete, correctly ordered chain is accepted."""
        self.assertEqual(self._validate(self.canonical), [])

    def test_chain_anchored_by_store_only(self):
        """Test a chain that stops below the root held in the trust store."""
        self.assertEqual(self._validate([self.leaf.cert, self.intermediate.cert]), [])

    def test_leaf_only_with_missing_intermediate(self):
        """Test that a leaf whose issuer is not available is from an unknown CA."""
        self.assertEqual(self._validate([self.leaf.cert]), [UNKNOWN_CA])

    def test_unknown_ca(self):
        """Test a chain whose root is not trusted and not included."""
        result = self._validate([self.leaf.cert, self.intermediate.cert], store=TrustAnchorStore())
        self.assertEqual(result, [UNKNOWN_CA])

    def test_untrusted_root_in_chain(self):
        """Test that an untrusted self-signed root is reported as SELF_SIGNED."""
        result = self._validate(self.canonical, store=TrustAnchorStore())
        self.assertEqual(result, [SELF_SIGNED])

    def test_self_signed_trusted(self):
        """Test a single trusted self-signed certificate with a matching name."""
        self_signed = self.factory.self_signed()
        store = TrustAnchorStore([self_signed.cert])
        self.assertEqual(self._validate([self_signed.cert], store=store), [])

    def test_self_signed_untrusted(self):
        """Test a single self-signed certificate that is not a trust anchor."""
        self_signed = self.factory.self_signed()
        result = self._validate([self_signed.cert], store=self.store)
        self.assertIn(SELF_SIGNED, result)
        self.assertEqual(self._validate([self_signed.cert], host_name=None), [SELF_SIGNED])

    def test_expired_leaf_fail_fast(self):
        """Test that an expired leaf is the only reason in fail-fast mode."""
        leaf = self.factory.leaf(self.root, not_before=datetime(2023, 1, 1),
                                 not_after=datetime(2024, 1, 31))
        result = self._validate([leaf.cert, self.root.cert])
        self.assertEqual(result, [EXPIRED])

    def test_expired_leaf_exhaustive(self):
        """Test that exhaustive mode also reports independent failures."""
        leaf = self.factory.leaf(self.root, not_before=datetime(2023, 1, 1),
                                 not_after=datetime(2024, 1, 31))
        result = self._validate([leaf.cert, self.root.cert], host_name="other.example.org",
                                checks=EXHAUSTIVE)
        self.assertIn(EXPIRED, result)
        self.assertIn(FailedReason.name_mismatch("other.example.org"), result)

    def test_fail_fast_stops_at_name_mismatch(self):
        """Test that the name check runs first and stops a fail-fast validation."""
        leaf = self.factory.leaf(self.root, not_before=datetime(2023, 1, 1),
                                 not_after=datetime(2024, 1, 31))
        result = self._validate([leaf.cert, self.root.cert], host_name="other.example.org")
        self.assertEqual(result, [FailedReason.name_mismatch("other.example.org")])

    def test_leaf_in_future(self):
        """Test a leaf whose validity has not started yet."""
        leaf = self.factory.leaf(self.root, not_before=datetime(2024, 7, 1))
        self.assertEqual(self._validate([leaf.cert, self.root.cert]), [IN_FUTURE])

    def test_time_validity_disabled(self):
        """Test that disabling time checks accepts an expired leaf."""
        leaf = self.factory.leaf(self.root, not_before=datetime(2023, 1, 1),
                                 not_after=datetime(2024, 1, 31))
        checks = Checks(check_time_validity=False)
        self.assertEqual(self._validate([leaf.cert, self.root.cert], checks=checks), [])

    def test_naive_checking_time(self):
        """Test that a naive checking time is interpreted as UTC."""
        self.assertEqual(self._validate(self.canonical, now=datetime(2024, 6, 1, 12, 0)), [])

    def test_wildcard_names(self):
        """Test wildcard acceptance and rejection through the full validation."""
        wildcard = self.factory.self_signed(common_name=None, dns_names=("*.example.com",))
        too_broad = self.factory.self_signed(common_name=None, dns_names=("*.com",))
        store = TrustAnchorStore([wildcard.cert, too_broad.cert])

        self.assertEqual(self._validate([wildcard.cert], "www.example.com", store=store), [])
        self.assertEqual(self._validate([too_broad.cert], "www.example.com", store=store),
                         [INVALID_WILDCARD])
        self.assertEqual(self._validate([wildcard.cert], "a.b.example.com", store=store),
                         [FailedReason.name_mismatch("a.b.example.com")])

    def test_reordering_invariance(self):
        """Test that any permutation validates like the canonical order."""
        expected = self._validate(self.canonical, checks=EXHAUSTIVE)
        for permutation in itertools.permutations(self.canonical):
            with self.subTest(order=[c.subject.rfc4514_string() for c in permutation]):
                self.assertEqual(self._validate(list(permutation), checks=EXHAUSTIVE), expected)

    def test_strict_ordering_rejects_permutations(self):
        """Test that strict ordering surfaces broken adjacency."""
        checks = Checks(check_strict_ordering=True, check_exhaustive=True)
        self.assertEqual(self._validate(self.canonical, checks=checks), [])

        for permutation in itertools.permutations(self.canonical):
            if list(permutation) == self.canonical:
                continue
            with self.subTest(order=[c.subject.rfc4514_string() for c in permutation]):
                result = self._validate(list(permutation), checks=checks)
                self.assertTrue(SIGNATURE_FAILED in result or UNKNOWN_CA in result)

    def test_unrelated_certificate_injection(self):
        """Test that an unrelated certificate does not change the result."""
        other_root = self.factory.root("Other Root CA")
        unrelated = [
            self.factory.leaf(other_root, "junk.example.net", dns_names=("junk.example.net",)).cert,
            other_root.cert,
        ]
        expected = self._validate(self.canonical)

        for junk in unrelated:
            for position in range(len(self.canonical) + 1):
                chain = list(self.canonical)
                chain.insert(position, junk)
                with self.subTest(junk=junk.subject.rfc4514_string(), position=position):
                    self.assertEqual(self._validate(chain), expected)

        direct = self.factory.leaf(self.root)
        self.assertEqual(self._validate([direct.cert]), [])
        for junk in unrelated:
            for position in range(2):
                chain = [direct.cert]
                chain.insert(position, junk)
                with self.subTest(junk=junk.subject.rfc4514_string(), position=position, single=True):
                    self.assertEqual(self._validate(chain), [])

    def test_idempotence(self):
        """Test that validating the same inputs twice gives identical results."""
        leaf = self.factory.leaf(self.root, not_after=datetime(2024, 2, 1))
        chain = [self.intermediate.cert, leaf.cert, self.root.cert]
        first = self._validate(chain, host_name="nope.example.com", checks=EXHAUSTIVE)
        second = self._validate(chain, host_name="nope.example.com", checks=EXHAUSTIVE)
        self.assertEqual(first, second)

    def test_intermediate_not_a_ca(self):
        """Test that a signing certificate without the CA flag is rejected."""
        not_ca = self.factory.intermediate(self.root, "Not A CA", ca=False, key_cert_sign=False)
        leaf = self.factory.leaf(not_ca)
        chain = [leaf.cert, not_ca.cert, self.root.cert]

        self.assertEqual(self._validate(chain), [NOT_ALLOWED_TO_SIGN])
        self.assertEqual(self._validate(chain, checks=Checks(check_ca_constraints=False)), [])

    def test_intermediate_without_cert_sign_usage(self):
        """Test a CA whose key usage does not allow certificate signing."""
        restricted = self.factory.intermediate(self.root, "Restricted CA", key_cert_sign=False)
        leaf = self.factory.leaf(restricted)
        self.assertEqual(self._validate([leaf.cert, restricted.cert, self.root.cert]),
                         [NOT_ALLOWED_TO_SIGN])

    def test_root_path_length_exceeded(self):
        """Test that CA constraints apply to the root's path length limit."""
        root = self.factory.root("Short Root CA", path_length=0)
        intermediate = self.factory.intermediate(root, "Short Intermediate CA")
        leaf = self.factory.leaf(intermediate)
        store = TrustAnchorStore([root.cert])

        result = self._validate([leaf.cert, intermediate.cert, root.cert], store=store)
        self.assertEqual(result, [NOT_ALLOWED_TO_SIGN])

    def test_forged_leaf_signature(self):
        """Test a leaf naming the intermediate as issuer but signed by another key."""
        key = generate_key()
        forged = build_certificate(make_name("www.example.com"), self.intermediate.cert.subject,
                                   key.public_key(), generate_key(), ca=False,
                                   dns_names=("www.example.com",))
        result = self._validate([forged, self.intermediate.cert, self.root.cert])
        self.assertEqual(result, [SIGNATURE_FAILED])

    def test_impostor_anchor(self):
        """Test a store anchor with the right name but the wrong key."""
        impostor = build_certificate(self.root.cert.subject, self.root.cert.subject,
                                     generate_key().public_key(), generate_key(), ca=True)
        store = TrustAnchorStore([impostor])
        result = self._validate([self.leaf.cert, self.intermediate.cert], store=store)
        self.assertEqual(result, [SIGNATURE_FAILED])

    def test_self_issued_with_bad_signature(self):
        """Test that a self-issued certificate failing its own signature is from an unknown CA."""
        name = make_name("www.example.com")
        broken = build_certificate(name, name, generate_key().public_key(), generate_key(),
                                   dns_names=("www.example.com",))

        self.assertEqual(self._validate([broken], host_name=None, store=TrustAnchorStore()),
                         [UNKNOWN_CA])
        self.assertEqual(self._validate([broken], store=TrustAnchorStore()), [UNKNOWN_CA])

    def test_unknown_critical_extension(self):
        """Test that an unknown critical extension on the leaf is reported."""
        unknown = x509.UnrecognizedExtension(x509.ObjectIdentifier("1.3.6.1.4.1.55555.1"), b"\x05\x00")
        critical_leaf = self.factory.leaf(self.root, extra_extensions=[(unknown, True)])
        lenient_leaf = self.factory.leaf(self.root, extra_extensions=[(unknown, False)])

        self.assertEqual(self._validate([critical_leaf.cert, self.root.cert]),
                         [UNKNOWN_CRITICAL_EXTENSION])
        self.assertEqual(self._validate([lenient_leaf.cert, self.root.cert]), [])

    def test_rsa_chain(self):
        """Test a chain signed with RSA PKCS#1 v1.5."""
        factory = CertificateFactory(key_kind='rsa')
        root, intermediate, leaf = factory.chain()
        result = self._validate([leaf.cert, intermediate.cert, root.cert],
                                store=TrustAnchorStore([root.cert]))
        self.assertEqual(result, [])

    def test_ed25519_chain(self):
        """Test a chain signed with Ed25519."""
        factory = CertificateFactory(key_kind='ed25519')
        root, intermediate, leaf = factory.chain()
        result = self._validate([root.cert, leaf.cert, intermediate.cert],
                                store=TrustAnchorStore([root.cert]))
        self.assertEqual(result, [])

    def test_validate_report(self):
        """Test the report describing the evaluated path."""
        other_root = self.factory.root("Other Root CA")
        validator = ChainValidator(self.store)
        report = validator.validate_report(
            [self.root.cert, other_root.cert, self.leaf.cert, self.intermediate.cert],
            NOW, "www.example.com"
        )

        self.assertTrue(report.is_valid)
        self.assertEqual(list(report.path), self.canonical)
        self.assertEqual(list(report.dropped), [other_root.cert])
        self.assertEqual(report.to_dict()['dropped'], [other_root.cert.subject.rfc4514_string()])

    def test_module_level_validate(self):
        """Test the functional entry point with a plain list of anchors."""
        result = validate(Checks(), [self.root.cert], "www.example.com", NOW, self.canonical)
        self.assertEqual(result, [])

        result = validate(Checks(), [self.root.cert], "www.example.com", NOW, [])
        self.assertEqual(result, [EMPTY_CHAIN])

    def test_fatal_error_propagates(self):
        """Test that a verifier unable to evaluate an algorithm raises instead of failing."""
        verifier = Mock(spec=SignatureVerifier)
        verifier.verify.side_effect = UnsupportedAlgorithmError("no backend")
        validator = ChainValidator(self.store, verifier=verifier)

        with self.assertRaises(UnsupportedAlgorithmError):
            validator.validate(self.canonical, NOW, "www.example.com")

    def test_custom_verifier(self):
        """Test that the injected signature primitive decides the linkage."""
        verifier = Mock(spec=SignatureVerifier)
        verifier.verify.return_value = False
        validator = ChainValidator(self.store, verifier=verifier)

        result = validator.validate([self.leaf.cert, self.intermediate.cert], NOW, "www.example.com")
        self.assertEqual(result, [SIGNATURE_FAILED])
        self.assertTrue(verifier.verify.called)


if __name__ == '__main__':
    unittest.main()
