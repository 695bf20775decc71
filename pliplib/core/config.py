#!/usr/bin/env python3

"""
Cascading configuration for every plip stage.

A configuration is built from a small line-oriented language:

	[filters]
	aproc1 = compress
	/^voice/ aproc1 = level
	compress = acompressor=level_in=$(level)dB
	compress += ,alimiter

Each directive keeps an ordered chain of entries. Plain unconditioned
assignments restart the chain, everything else (extensions and
conditioned entries) is appended to it, and reading a directive folds
the chain against a condition context before substituting variables.
"""

import os
import re
from pliplib.core import utils
from pliplib.core.defconfig import DEFAULT_CONFIG

#============================================

# levels walked when cascading plip.ini files, the defaults included
MAX_CONFIG_DEPTH = 17
CONFIG_FILENAME = "plip.ini"

IDENTIFIER_RE = re.compile(r"[A-Za-z0-9_]+")
WHITESPACE = " \n\r\t\v"
VALUE_ESCAPES = {
	'n': "\n",
	'r': "\r",
	't': "\t",
	'v': "\v",
}
FALSE_LEADERS = "0FfNn"

#============================================

class DirectiveEntry():
	"""
	One conditioned or extending piece of a directive.
	"""
	def __init__(self, value: str, condition: str = None,
		extension: bool = False, left: bool = False):
		self.value = value
		self.condition = condition
		self.extension = extension
		self.left = left
		self._pattern = None
		if condition is not None:
			try:
				self._pattern = re.compile(condition)
			except re.error as exc:
				utils.debug(f"^CONFIG: bad condition /{condition}/: {exc}")

	#============================
	def matches(self, context: str) -> bool:
		if self.condition is None:
			return True
		if self._pattern is None:
			return False
		# no context is matched as empty text
		if context is None:
			context = ""
		return self._pattern.search(context) is not None

	#============================
	def describe(self) -> dict:
		data = {'value': self.value}
		if self.condition is not None:
			data['condition'] = self.condition
		if self.extension:
			data['extension'] = 'left' if self.left else 'right'
		return data

#============================================

class DirectiveStore():
	"""
	Insertion-ordered map of directive name to its entry chain.
	"""
	def __init__(self):
		self._chains = {}

	#============================
	def add(self, key: str, entry: DirectiveEntry) -> None:
		chain = self._chains.get(key)
		if chain is not None and (entry.extension or entry.condition is not None):
			chain.append(entry)
			return
		self._chains[key] = [entry]

	#============================
	def chain(self, key: str) -> tuple:
		chain = self._chains.get(key)
		if chain is None:
			return None
		return tuple(chain)

	#============================
	def keys(self) -> list:
		return list(self._chains.keys())

	#============================
	def __contains__(self, key: str) -> bool:
		return key in self._chains

	#============================
	def __len__(self) -> int:
		return len(self._chains)

#============================================

def _join_continuations(lines: list) -> list:
	joined = []
	index = 0
	while index < len(lines):
		line = lines[index]
		while _ends_with_continuation(line) and index + 1 < len(lines):
			index += 1
			line = line[:-1] + lines[index]
		joined.append(line)
		index += 1
	return joined

#============================================

def _ends_with_continuation(line: str) -> bool:
	trailing = len(line) - len(line.rstrip("\\"))
	return trailing % 2 == 1

#============================================

def _skip_white(line: str, pos: int) -> int:
	while pos < len(line) and line[pos] in WHITESPACE:
		pos += 1
	return pos

#============================================

def _unescape_value(text: str) -> str:
	"""
	Apply value escapes; an escaped dollar becomes $$ so that
	substitution turns it back into a literal $.
	"""
	pieces = []
	pos = 0
	while pos < len(text):
		char = text[pos]
		if char == "\\" and pos + 1 < len(text):
			escaped = text[pos + 1]
			if escaped == "$":
				pieces.append("$$")
			else:
				pieces.append(VALUE_ESCAPES.get(escaped, escaped))
			pos += 2
			continue
		pieces.append(char)
		pos += 1
	return "".join(pieces)

#============================================

def parse_directive_line(line: str, prefix: str):
	"""
	Parse one logical config line.

	Returns:
		tuple: ('prefix', new_prefix), ('directive', key, entry) or
			('skip', reason).
	"""
	pos = _skip_white(line, 0)
	if pos >= len(line):
		return ('skip', None)

	if line[pos] == '[':
		end = line.find(']', pos + 1)
		if end < 0:
			end = len(line)
		name = line[pos + 1:end]
		if name == "":
			return ('prefix', None)
		return ('prefix', name + ".")

	condition = None
	if line[pos] == '/':
		pos += 1
		end = pos
		while end < len(line) and line[end] != '/':
			if line[end] == "\\" and end + 1 < len(line) and line[end + 1] == '/':
				end += 1
			end += 1
		condition = line[pos:end]
		pos = end
		if pos < len(line) and line[pos] == '/':
			pos += 1

	pos = _skip_white(line, pos)
	match = IDENTIFIER_RE.match(line, pos)
	if match is None:
		return ('skip', "no directive name")
	key = match.group(0)
	if prefix is not None:
		key = prefix + key
	pos = _skip_white(line, match.end())

	extension = False
	left = False
	if line.startswith("=", pos):
		pos += 1
	elif line.startswith("+=", pos):
		extension = True
		pos += 2
	elif line.startswith("<+=", pos):
		extension = True
		left = True
		pos += 3
	else:
		return ('skip', f"no assignment operator for {key}")

	pos = _skip_white(line, pos)
	value = _unescape_value(line[pos:])
	entry = DirectiveEntry(value, condition=condition, extension=extension,
		left=left)
	return ('directive', key, entry)

#============================================

def substitute_variables(template: str, variables: dict = None) -> str:
	"""
	Expand $name and $(name) references; $$ is a literal dollar.
	Substituted values are not expanded again.
	"""
	if variables is None:
		variables = {}
	pieces = []
	pos = 0
	length = len(template)
	while pos < length:
		dollar = template.find('$', pos)
		if dollar < 0:
			pieces.append(template[pos:])
			break
		pieces.append(template[pos:dollar])
		nxt = dollar + 1
		if nxt < length and template[nxt] == '$':
			pieces.append('$')
			pos = nxt + 1
			continue
		if nxt < length and template[nxt] == '(':
			close = template.find(')', nxt + 1)
			if close < 0:
				name = template[nxt + 1:]
				pos = length
			else:
				name = template[nxt + 1:close]
				pos = close + 1
		else:
			match = IDENTIFIER_RE.match(template, nxt)
			if match is None:
				name = ""
				pos = nxt
			else:
				name = match.group(0)
				pos = match.end()
		value = variables.get(name)
		if value is not None:
			pieces.append(str(value))
	return "".join(pieces)

#============================================

class ConfigEngine():
	"""
	A directive store plus the readers every stage uses.

	Build it completely (defaults, then files) before the first read;
	after that it is shared read-only, also across threads.
	"""
	def __init__(self):
		self.store = DirectiveStore()
		self.sources = []
		self._frozen = False

	#============================
	def _check_writable(self) -> None:
		if self._frozen:
			raise RuntimeError("configuration cannot be extended after it has been read")

	#============================
	def extend_defaults(self) -> None:
		self._check_writable()
		utils.debug("^CONFIG: Default")
		self.extend_text(DEFAULT_CONFIG)
		self.sources.append("<defaults>")

	#============================
	def extend_file(self, filepath: str) -> bool:
		"""
		Extend with a config file; unreadable files are ignored.

		Returns:
			bool: True if the file was read.
		"""
		self._check_writable()
		try:
			with open(filepath, 'rb') as config_file:
				raw = config_file.read()
		except OSError:
			return False
		utils.debug(f"^CONFIG: File {filepath}")
		if b"\xff" in raw[:2]:
			raise RuntimeError(
				f"unsupported UTF-16/UCS-2 config file {filepath}, "
				"please use UTF-8 or ASCII"
			)
		text = raw.decode('utf-8-sig', errors='replace')
		self.extend_text(text)
		self.sources.append(filepath)
		return True

	#============================
	def extend_text(self, text: str) -> None:
		self._check_writable()
		lines = [line[:-1] if line.endswith("\r") else line
			for line in text.split("\n")]
		prefix = None
		for line in _join_continuations(lines):
			parsed = parse_directive_line(line, prefix)
			if parsed[0] == 'prefix':
				prefix = parsed[1]
				continue
			if parsed[0] == 'skip':
				if parsed[1] is not None:
					utils.debug(f"^CONFIG: skipped line, {parsed[1]}: {line.strip()}")
				continue
			(key, entry) = (parsed[1], parsed[2])
			utils.debug(f"^CONFIG: Directive {key} {entry.describe()}")
			self.store.add(key, entry)

	#============================
	def resolve(self, directive: str, condition: str = None,
		variables: dict = None) -> str:
		"""
		Fold a directive's chain for a condition context and expand
		variables. Returns None if it resolves to nothing.
		"""
		self._frozen = True
		chain = self.store.chain(directive)
		if chain is None:
			return None
		folded = ""
		for entry in chain:
			if not entry.matches(condition):
				continue
			if not entry.extension:
				folded = entry.value
			elif entry.left:
				folded = entry.value + folded
			else:
				folded = folded + entry.value
		if folded == "":
			return None
		return substitute_variables(folded, variables)

	#============================
	def get(self, directive: str) -> str:
		return self.resolve(directive)

	#============================
	def read_bool(self, directive: str, condition: str = None) -> bool:
		raw = self.resolve(directive, condition)
		if raw is None:
			return False
		return raw[0] not in FALSE_LEADERS

	#============================
	def read_int(self, directive: str, condition: str = None) -> int:
		return utils.parse_leading_int(self.resolve(directive, condition))

	#============================
	def read_float(self, directive: str, condition: str = None) -> float:
		return utils.parse_leading_float(self.resolve(directive, condition))

	#============================
	def dump(self) -> dict:
		data = {}
		for key in self.store.keys():
			data[key] = [entry.describe() for entry in self.store.chain(key)]
		return data

#============================================

def ancestor_config_paths(directory: str, filename: str) -> list:
	"""
	Candidate config files from the outermost ancestor down to directory.
	"""
	paths = []
	seen = set()
	for level in range(MAX_CONFIG_DEPTH - 2, -1, -1):
		parts = [directory] + [".."] * level + [filename]
		candidate = os.path.abspath(os.path.join(*parts))
		if candidate in seen:
			continue
		seen.add(candidate)
		paths.append(candidate)
	return paths

#============================================

def load_hierarchy(directory: str = ".", filename: str = CONFIG_FILENAME,
	parents: bool = True) -> ConfigEngine:
	"""
	Defaults first, then every ancestor's file, closest last.
	Without parents only the directory's own file is read.
	"""
	config = ConfigEngine()
	if not parents:
		config.extend_file(os.path.join(directory, filename))
		return config
	config.extend_defaults()
	for path in ancestor_config_paths(directory, filename):
		config.extend_file(path)
	return config

#============================================

def init_config(config_file: str = None, directory: str = ".") -> ConfigEngine:
	"""
	Build the configuration for a stage.

	Args:
		config_file: None for the plip.ini cascade, '-' for the embedded
			defaults alone, or a file loaded after the cascade.
		directory: where the cascade starts.
	"""
	if config_file == "-":
		config = ConfigEngine()
		config.extend_defaults()
		return config
	config = load_hierarchy(directory, CONFIG_FILENAME)
	if config_file is not None:
		config.extend_file(config_file)
	return config
