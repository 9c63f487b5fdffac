from ramzishare.access import AccessCodeRegistry, check_code, hash_code


def test_verify_correct_and_wrong():
    reg = AccessCodeRegistry()
    reg.set_code('f.txt', 'xyz')
    assert reg.verify('f.txt', 'xyz')
    assert not reg.verify('f.txt', 'xyZ')
    assert not reg.verify('f.txt', '')
    assert not reg.verify('f.txt', None)


def test_unknown_name():
    reg = AccessCodeRegistry()
    assert not reg.verify('missing', 'anything')
    assert 'missing' not in reg


def test_set_code_overwrites():
    reg = AccessCodeRegistry()
    reg.set_code('f', 'old')
    reg.set_code('f', 'new')
    assert not reg.verify('f', 'old')
    assert reg.verify('f', 'new')
    assert len(reg) == 1


def test_clear_is_safe_when_absent():
    reg = AccessCodeRegistry()
    reg.set_code('f', 'abc')
    reg.clear('f')
    reg.clear('f')
    assert not reg.has_code('f')
    assert len(reg) == 0


def test_digest_is_salted_and_not_plaintext():
    a = hash_code('secret')
    b = hash_code('secret')
    assert a != b
    assert 'secret' not in a
    assert check_code('secret', a) and check_code('secret', b)
    assert not check_code('secret', 'not-hex$00')
