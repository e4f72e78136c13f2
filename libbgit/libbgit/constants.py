"""Constants shared across libbgit."""

import hashlib

DEFAULT_REPO_DIR = '.bgit'
DEFAULT_BRANCH = 'master'
IGNORE_FILE = '.bgitignore'

OBJECTS_SUBDIR = 'objects'
REFS_DIR = 'refs'
HEADS_DIR = 'heads'
TAGS_DIR = 'tags'
HEAD_FILE = 'HEAD'
MERGE_HEAD_FILE = 'MERGE_HEAD'

SYMREF_PREFIX = 'ref:'
MAX_REF_DEPTH = 16

# Swapping the algorithm changes every width below, tree entries included.
HASH_ALGORITHM = 'sha1'
HASH_DIGEST_SIZE = hashlib.new(HASH_ALGORITHM).digest_size
HASH_LENGTH = HASH_DIGEST_SIZE * 2
HASH_CHARSET = frozenset('0123456789abcdef')

MODE_FILE = '100644'
MODE_DIR = '40000'
MODE_GITLINK = '160000'

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'

CONFLICT_START = b'<<<<<<<'
CONFLICT_MID = b'======='
CONFLICT_END = b'>>>>>>>'
HEAD_LABEL = 'HEAD'

BUILTIN_IGNORES = frozenset({DEFAULT_REPO_DIR, IGNORE_FILE, '.git', '.gitignore', '.DS_Store', '.vscode'})
HOUSEKEEPING_FILES = frozenset({'.DS_Store'})

LOG_LEVEL_ENV = 'BGIT_LOG_LEVEL'
