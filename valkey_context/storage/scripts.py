"""Lua scripts that mutate one property of a stored JSON document.

Valkey runs each script to completion before serving any other command,
so the read-modify-write of the whole document cannot interleave with a
concurrent writer of the same key.

Arguments: ``KEYS[1]`` is the remote key, ``ARGV[1]`` the dotted path
below the top-level segment and, for set, ``ARGV[2]`` the JSON value.

Replies:
    1   the document was written
    0   nothing to do (missing document, path through a non-object, empty path)
    -1  the document is gzip-framed and cannot be decoded server-side
"""

COMPRESSED_DOCUMENT = -1

# cjson decodes JSON arrays and objects alike into tables. A decoded array
# has a positive length; an object only has string keys so its length is 0.
# An empty array is indistinguishable from an empty object.
IS_OBJECT = """
local function is_object(v)
  return type(v) == 'table' and #v == 0
end
"""

# A root or intermediate value that is not an object (scalars and arrays)
# is replaced by an empty object, matching permissive nested assignment.
SET_NESTED_SCRIPT = IS_OBJECT + """
local key = KEYS[1]
local path = ARGV[1]
local value = ARGV[2]

local existing = redis.call('GET', key)
if existing and string.sub(existing, 1, 5) == 'gzip:' then
  return -1
end

local parts = {}
for part in string.gmatch(path, '[^.]+') do
  table.insert(parts, part)
end
if #parts == 0 then
  return 0
end

local data = {}
if existing then
  local decoded = cjson.decode(existing)
  if is_object(decoded) then
    data = decoded
  end
end

local current = data
for i = 1, #parts - 1 do
  local part = parts[i]
  if not is_object(current[part]) then
    current[part] = {}
  end
  current = current[part]
end

current[parts[#parts]] = cjson.decode(value)

redis.call('SET', key, cjson.encode(data))
return 1
"""

# Deletion never fabricates structure: a missing document or a
# non-object on the way to the parent leaves the key untouched.
DELETE_NESTED_SCRIPT = IS_OBJECT + """
local key = KEYS[1]
local path = ARGV[1]

local existing = redis.call('GET', key)
if not existing then
  return 0
end
if string.sub(existing, 1, 5) == 'gzip:' then
  return -1
end

local parts = {}
for part in string.gmatch(path, '[^.]+') do
  table.insert(parts, part)
end
if #parts == 0 then
  return 0
end

local data = cjson.decode(existing)
if not is_object(data) then
  return 0
end

local current = data
for i = 1, #parts - 1 do
  local part = parts[i]
  if not is_object(current[part]) then
    return 0
  end
  current = current[part]
end

local last = parts[#parts]
if current[last] == nil then
  return 0
end
current[last] = nil

redis.call('SET', key, cjson.encode(data))
return 1
"""
