# corekit

Building blocks for the core of a desktop-style application. Each subsystem is
a small manager object that you create and own; nothing is a global singleton
except the application logger.

## Modules

- `corekit.applog`: the application logger named `"App"`.
  `init_logging(path="./Logs/setup.log", max_file_size=5 MiB, max_files=3,
  console_out=False)` writes INFO and above to a rotating file (and to stdout
  when `console_out` is true) and keeps the last 32 records of any level;
  calling it again restarts logging. `shutdown_logging()` writes those
  records out between backtrace markers and removes the handlers.
  `get_logger()` returns the logger.
- `corekit.service`: `ServiceManager` holds one service per interface type
  (`register_service`, `get_service`, `unregister_service`; a second
  registration for the same type is ignored) and services per interface and
  name (`register_named_service`, `get_named_service`,
  `unregister_named_service`). Instances must be instances of the interface,
  or `TypeError` is raised. `shutdown()` calls `shutdown()` on every service
  registered under a `ServiceBase` interface, named ones first.
- `corekit.i18n`: `I18nManager` loads JSON objects per locale
  (`load_from_file`, `load_from_string`; `I18nLoadError` on unreadable or
  malformed input). `t(key, **kwargs)` looks in the current locale, then the
  fallback locale (`"en-US"` unless given), then returns the key itself, and
  fills `{name}` fields. `tc(base_key, count, **kwargs)` picks `base_key_one`
  or `base_key_other`. Non-string values are stored as text.
- `corekit.resource`: `ResourceManager` mounts aliases (`mount("assets",
  "data/")` makes `assets://img/a.png` resolvable), picks a loader by file
  suffix (`register_loader(".png", loader)`), caches what loads
  (`get(logical_path, kind)`, `reload`) and drops cache entries nobody else
  holds (`unload_unused`, which returns how many). Resources subclass
  `ResourceBase` and implement `size_in_bytes()`.
- `corekit.event`: `EventManager` delivers an event to the callbacks
  subscribed to its topic and exact type, on a thread pool started by
  `init()`. `publish` returns the delivery's `Future`, or None when nobody is
  to be called. Subscription ids start at 1; `unsubscribe(event_type, id)`
  only removes a subscription made for that type.
- `corekit.ui`: `UiRegistry` keeps named anchors (`register_anchor`,
  `get_anchor(anchor_id, kind)`) and stable numeric ids for names starting at
  `FIRST_ID` (6000) (`get_id`, `remove_id`, `create_anonymous_id`,
  `get_name`, which returns `"Anonymous_or_Unknown"` for unknown ids).
- `corekit.plugin_model`: plugin enums (`PluginType`, `InstallMethod`,
  `PluginState`), `PluginMetadata`, `PluginInstance`, the abstract
  `PluginBase`, and the helpers `read_plugin_json`, `check_integrity` and
  `parse_manifest_entry`.
- `corekit.plugins`: `PluginManager` reads `core_manifest.json` and
  `user_manifest.json`, checks every plugin's `plugin.json`, binary, libraries
  and resources, loads builtin plugins at `init`, loads dependencies first,
  unloads in reverse order, disables dependants along with a plugin
  (`set_plugin_enabled`), and installs from a directory (linked in place) or a
  zip package (copied into the user directory). Builtin plugins that fail the
  check are listed in `missing_core_plugins`.
- `corekit.strings`: `split(s, delimiter)` drops empty tokens;
  `first_valid_path_component(path)` returns the first non-empty `/`-separated
  part.
- `corekit.uuidgen`: `generate()` returns a random version 4 UUID string.

## Installation

```
pip install corekit
```

## Examples

```python
from corekit.i18n import I18nManager
from corekit.uuidgen import generate

i18n = I18nManager()
i18n.init("de-DE", "en-US")
i18n.load_from_string('{"greet": "Hello, {name}!"}', "en-US")
print(i18n.t("greet", name="Alice"))   # Hello, Alice!

print(generate())   # e.g. 3f2b8c1e-5a7d-4e9f-8b21-0c6d4a9e7f13
```

```python
from corekit.event import EventManager

events = EventManager()
events.init()
events.subscribe(str, print, topic="greetings")
events.publish("hi", topic="greetings").result()   # prints "hi"
events.shutdown()
```

```python
from corekit.plugin_model import PluginBase
from corekit.plugins import PluginManager

class Hello(PluginBase):
    id = "hello"
    name = "Hello"
    version = "1.0.0"
    cert = ""

    def init(self):
        return True

    def shutdown(self):
        pass

# The loader turns the path of a plugin's binary into a plugin object.
manager = PluginManager(lambda binary_path: Hello())
manager.init("plugins/core", "plugins/user")
print(manager.missing_core_plugins)
```

## What it does not do

- It loads no native libraries: `PluginManager` is given a loader function
  that produces plugin objects from a binary's path.
- It has no window or layout handling: `UiRegistry` only stores objects and
  ids you hand it.
- It has no configuration store and no general task queue, and there is no
  single function that starts or stops every manager; create and initialise
  the ones you need.

## Running the tests

```
pip install corekit[test]
pytest
```