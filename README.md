# kanbot

Building blocks for a group chat bot. Each module does one job and can be
used without the others:

- `kanbot.timer`: the `Timer` dataclass packs month, day, weekday, hour,
  minute and an enabled flag into one integer. `filled_timer` builds one from
  the groups of a Chinese reminder phrase, `filled_cron_timer` from a cron
  expression, and `chinese_num_to_int` / `chinese_char_to_int` read Chinese
  numerals.
- `kanbot.schedule`: `next_wake_time` computes when a dated timer should next
  be checked, `should_fire` tells whether it matches a moment, and
  `first_weekday` finds the first given weekday of a month.
- `kanbot.clock`: `CronSchedule` parses five-field cron expressions and the
  `@daily`-style shortcuts. `Clock` stores timers in SQLite, runs each one on
  a background thread and hands the message segments built by
  `alert_message` to a `send(self_id, group_id, segments)` callback you
  supply. It can also list and cancel the timers of a group.
- `kanbot.manager`: `ManagerStore` keeps welcome and farewell texts and
  gist-verified members in SQLite. `check_new_user` approves a join request
  when the gist named by the md5 of the group number holds a Unix timestamp
  less than ten minutes old, and raises `VerificationError` with the reason
  otherwise. `parse_gist_answer`, `gist_url` and `welcome_to_cq` are the
  helpers around it.
- `kanbot.moderation`: ban lengths in seconds (`ban_seconds`,
  `self_ban_seconds`, capped just under a month), `unescape_cq`,
  `toggle_flag` for per-group feature bits, `pick_lucky_member` among the
  ten most recent speakers, and `check_answer` for the join quiz.
- `kanbot.midi`: a small note language (`CCGGAAGR FFEEDDCR`, `C#6`, `<n` for
  lengths) to MIDI with `build_midi` / `write_midi` and back with
  `midi_to_text`. `render_wav` converts to WAV by running `timidity`.
  `EarTraining` is a five-question ear-training game for one player or a
  team.
- `kanbot.registry`: `MarriageRegistry` is the SQLite store of the daily
  group marriage game: rosters, modes, favour points and skill cooldowns.
- `kanbot.rules`: `check_propose`, `check_ntr`, `check_divorce` and
  `check_matchmaking` raise `Refused` with the reason when a member may not
  use a skill. `truncate_name` shortens a name to a drawn width.
- `kanbot.nsfw`: `judge` and `auto_judge` turn classifier `Scores` into a
  short verdict.
- `kanbot.moegoe`: `speech_url` and `match_request` build voice synthesis
  URLs for the known Japanese, Korean and Chinese speakers.
- `kanbot.hyaku`: `load_poems` reads the Hyakunin Isshu table into `Poem`
  objects, and `image_names` gives the image file names of a poem.
- `kanbot.lookup`: `guess` asks a web service what a pinyin abbreviation
  means, and `parse_guess` reads its reply.
- `kanbot.moyu`: the daily slacker reminder. `Holiday`, `parse_holiday`,
  `format_holiday`, `weekend_message` and `moyu_message` build its text.
- `kanbot.imagesource`: `random_image_url` fetches a random illustration
  address. `parse_image_url`, `image_api_url` and `image_name` are its
  helpers.

## Installation

```
pip install .
pip install ".[test]"   # with pytest, to run the tests
```

## Examples

Parse a reminder and derive its stable identifier:

```python
from kanbot.timer import chinese_num_to_int, filled_timer

timer = filled_timer(["", "12", "每周", "8", "30", "", "开会"], 0, 12345, False)
print(timer.timer_info())   # [12345]12月0日-1周8:30
print(timer.timer_id())     # 32-bit id from the md5 of that text

print(chinese_num_to_int("二十"))  # 20
```

Run reminders and receive their messages:

```python
from kanbot.clock import Clock
from kanbot.timer import filled_cron_timer

def send(self_id, group_id, segments):
    print(group_id, segments)

with Clock("timers.db", send=send) as clock:
    clock.register_timer(filled_cron_timer("0 9 * * 1", "周会", "", 0, 12345))
    print(clock.list_timers(12345))
```

Fill a welcome template:

```python
from kanbot.manager import welcome_to_cq

text = welcome_to_cq("欢迎 {at} 加入 {groupname}!", 10001, "Alice", 12345, "Test group")
```

Turn notes into MIDI:

```python
from kanbot.midi import parse_note, write_midi

print(parse_note("C#6"))   # 73
write_midi("CCGGAAGR FFEEDDCR", "song.mid", 40)
```

`kanbot.midi.render_wav` needs the `timidity` program to be installed and on
the `PATH`.

## What the package does not do

kanbot has no connection to a chat server and no command dispatcher: it does
not read messages, match commands or send replies by itself. Your bot calls
these functions and delivers what they return. `Clock` only hands messages to
the `send` callback it is given. The package does not classify images (it
only words scores you supply), does not download or draw images or speech,
and does not fetch the poem table or holiday records. `load_poems` and
`parse_holiday` take the text you give them.