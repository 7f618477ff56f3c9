from rci.PARSERS.env_parser import EnvParser

def test_parse_from_string():
    content = """
    KEY1=VALUE1
    KEY2 = VALUE2
    # This is a comment
    KEY3="VALUE3" # Trailing comment
    KEY4='VALUE4'
    export KEY5=VALUE5
    """
    env = EnvParser.parse_from_string(content)
    assert env['KEY1'] == 'VALUE1'
    assert env['KEY2'] == 'VALUE2'
    assert env['KEY3'] == 'VALUE3'
    assert env['KEY4'] == 'VALUE4'
    assert env['KEY5'] == 'VALUE5'
    assert 'KEY6' not in env

def test_bare_key_is_dropped():
    env = EnvParser.parse_from_string("EMBEDDING_MODEL\nQDRANT_PORT=7000\n")
    assert 'EMBEDDING_MODEL' not in env
    assert env['QDRANT_PORT'] == '7000'

def test_parse_file(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("EMBEDDING_MODEL=mxbai-embed-large\n")
    assert EnvParser.parse(str(env_file)) == {'EMBEDDING_MODEL': 'mxbai-embed-large'}
