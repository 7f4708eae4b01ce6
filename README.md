# moostools

Tools for watching and replaying the traffic of a MOOS community. No
third-party libraries are needed at run time.

## Installation

```
pip install .
```

## Messages

`moostools.messages.Message` is a single notification: a `key`, a
`data_type` (`DataType.DOUBLE`, `STRING`, `BINARY_STRING` or `NOT_SET`), a
numeric `value` or a `text` payload, a `time`, and its `source`, `community`
and `frequency`. `Message.as_string()` renders the payload as a viewer shows
it. The helpers `chomp(text, separator)` (split at the first separator) and
`is_numeric(text)` are used throughout the package.

## Scoping a database

`moostools.dbimage.DBImage` keeps the latest value of every variable, in
the order the variables first arrived, and is safe to share between
threads.

- `update(messages)` merges a batch of messages. Messages from masked
  sources (`set_mask(names)`) are ignored, and never-written variables are
  skipped unless `show_pending(True)` is set. A variable whose time stamp
  moved is marked as changed (`has_changed(index)`).
- `get(index)` returns a copy of a row as a `DBVariable` and raises
  `IndexError` for a missing row; `len(image)` counts the rows; `clear()`
  forgets them.
- `set_proc_info(messages)` reads a process summary
  (`name:SUBSCRIBED=a,b,PUBLISHED=c,d`); `processes()` lists the known
  processes, sorted, and `proc_info(name)` returns a `ProcessInfo` or raises
  `KeyError`.

`moostools.scope` formats the image as a seven-column table (`Name`,
`Time`, `Type`, `Freq`, `Source`, `Community`, `Value`):
`cell_value(image, row, column)`, `escape_at(text)` for drawing `@`
literally, `column_widths(width)`, and `validate_poke(type_code, text)`,
which checks a value typed in for a `$` (string) or `D` (numeric) variable
and raises `ValueError` when it does not suit.

`moostools.community` reads and writes the saved list of communities,
`name:port@host,...`, with `parse_communities()` and `format_communities()`
(each entry becomes a `CommunityConfig`), and holds a `ScopePane` per
community. A pane is given a client object with `is_connected()` and
`server_request(what)`; `fetch_once()` asks it for `ALL` variables and,
every fifth round, for the `PROC_SUMMARY`. `toggle_visibility(process)`,
`mask()`, `set_show_pending(flag)` and `title()` complete it.

```python
from moostools.community import parse_communities, format_communities

configs = parse_communities("Unnamed:9000@LOCALHOST")
print(format_communities(configs))  # Unnamed:9000@LOCALHOST,
```

## Replaying logs

Two players hand back, tick by tick, the messages that fall in each time
window, newest first. Both filter by source (`filter(source, wanted)`,
`clear_filter()`), seek with `goto_time()`, change speed with
`set_tick_interval()`, and wait for a slow client that reports its progress
through `set_last_time_processed()`; `status()` says which is happening.

- `moostools.playback.LogPlayback` loads a whole log into memory with
  `load(path)`, honouring a `LOGSTART` line, sorts it, and sets its `eof`
  attribute when the log is used up.
- `moostools.playback_v2.AlogPlayback` opens an `.alog` with `open(path)`
  (through `AlogFile`), reports its `sources()`, reads `<MOOS_BINARY>` data
  from the binary file beside the log, and puts a `PLAYBACK_DB_TIME` message
  at the head of every non-empty tick. It can be used as a context manager.

```python
from moostools.playback_v2 import AlogPlayback

with AlogPlayback() as playback:
    playback.open("mission.alog")
    print(playback.sources(), len(playback), playback.start_time(), playback.finish_time())
    playback.set_tick_interval(0.1)
    playback.reset()
    while not playback.eof():
        for message in playback.iterate():
            print(message.key, message.as_string())
```

`moostools.controller.PlaybackController` wraps an `AlogPlayback` with the
controls of a playback panel: `open`, `play`, `stop`, `rewind`,
`set_progress` and `seek`, `set_warp`, `set_sources`, `tick`, `progress`,
`clock_label` and `title`. Given a client with `is_connected()`, `fetch()`
and `post(message)`, each `tick()` posts what was due and follows
`PLAYBACK_CHOKE` messages from the client.

## Command line

```
moos-playback mission.alog [--warp 2] [--exclude SOURCE] [--seek PERCENT] [--fast]
```

replays the log in real time (times `--warp`), printing each message as
`key source value` on standard output; `--exclude` may be repeated, and
`--fast` plays without waiting between ticks. It exits with status 1 when the
file cannot be read.

## What the package does not do

There are no windows or other screens, and no network client for a MOOS
database: the scope pane and the playback controller work with whatever
client object the caller supplies, and the command line only prints.

## Tests

```
pip install .[test]
pytest
```