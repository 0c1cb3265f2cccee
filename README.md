# tareas

One package with four parts:

- **Image writers** in pure Python: PNG with its own DEFLATE compressor
  (`tareas.png`), baseline JPEG (`tareas.jpeg`), and BMP, TGA and Radiance
  HDR (`tareas.rawformats`).
- **RGB image filters** (`tareas.imaging`): mirror, rotate, attenuate,
  black-and-white threshold, and conversion of a picture into ASCII art.
- **A text dungeon crawler** (`tareas.mapfile`, `tareas.game`): rooms,
  enemies, events and combat upgrades read from a `.map` file.
- **A ride-graph reader** (`tareas.rides`): a directed street graph as
  adjacency lists, together with the locations of available ubers.

## Installing

```
pip install .
```

Pillow is the only runtime dependency; it is used to read image files in
`tareas.imaging.load`. For the test suite:

```
pip install .[test]
pytest
```

## Writing images

```python
from tareas.png import write_png
from tareas.jpeg import write_jpeg
from tareas.rawformats import write_bmp, write_tga, write_hdr

width, height = 2, 1
pixels = bytes([255, 0, 0, 0, 0, 255])  # two RGB pixels, red then blue

write_png("out.png", width, height, 3, pixels, 0)    # last argument: row stride, 0 = packed
write_jpeg("out.jpg", width, height, 3, pixels, 90)  # last argument: quality 1..100
write_bmp("out.bmp", width, height, 3, pixels)
write_tga("out.tga", width, height, 3, pixels)       # run-length encoded
write_hdr("out.hdr", width, height, 3, [1.0, 0.0, 0.0, 0.0, 0.0, 1.0])
```

Pixels are stored left to right, top to bottom, one byte per channel
(1 = grey, 2 = grey + alpha, 3 = RGB, 4 = RGBA); `write_hdr` takes linear
floats instead. Invalid dimensions, channel counts or too little pixel data
raise `tareas.rawformats.ImageFormatError`.

To get the file contents as `bytes` rather than writing a file:

- `encode_png(pixels, width, height, components, stride=0, compression_level=8, force_filter=-1, flip=False)`
  — `force_filter` 0..4 fixes the row filter; otherwise each row gets the
  filter with the lowest estimated entropy.
- `encode_jpeg(pixels, width, height, components, quality=90, flip=False)`
  — quality 0 means 90; above 90 the chroma is not subsampled; alpha is ignored.
- `encode_bmp(width, height, components, data, flip=False)`
- `encode_tga(width, height, components, data, rle=True, flip=False)`
- `encode_hdr(width, height, components, data, flip=False)`

`flip=True` stores the rows in the opposite vertical order.

`tareas.png` also exposes its building blocks: `crc32`, `adler32`, `paeth`
and `zlib_compress(data, quality=8)`, which produces a standard zlib stream
(fixed Huffman codes, falling back to stored blocks when that is smaller).
`tareas.rawformats.linear_to_rgbe(red, green, blue)` converts one linear
colour to its four RGBE bytes.

## Filtering images and making ASCII art

```python
from tareas.imaging import load, save, mirror, rotate, attenuate, threshold, to_ascii, save_ascii

image = load("picture.jpg")            # any format Pillow reads, converted to RGB
print(image.width, image.height, image.pixel(0, 0))

save(mirror(image), "mirrored.png")    # left-right reflection
save(rotate(image), "rotated.png")     # 90 degrees clockwise
save(attenuate(image, 0.5), "darker.png")
save(threshold(image, 120), "bw.png")
save_ascii(to_ascii(image), "picture.txt")
```

- `RgbImage(width, height, data)` is an immutable image; every filter
  returns a new one.
- `attenuate` multiplies every channel by a factor between 0 and 1
  (truncating) and raises `ValueError` outside that range.
- `threshold` makes a pixel black when the integer average of its channels is
  below the limit, and white otherwise.
- `to_ascii` returns one string per row, mapping each pixel's perceived
  brightness onto `.,-~:;=!*#$@`; pure white becomes a space.
- `save_ascii` appends the rows to a text file, one line each.
- `save` always writes PNG. `load` raises `ImageFormatError` when the file
  cannot be read.

### Command

```
tareas-imaging [IMAGE] [-o {ascii,mirror,rotate,attenuate,threshold}]
               [--output FILE] [--factor F] [--limit N]
```

`IMAGE` defaults to `Pikachu_para_copiar.jpg` and the operation to `ascii`,
which appends to `pikachu.txt`; the other operations write `Pikachu.png`
unless `--output` is given. `--factor` (default 0.5) is used by `attenuate`
and `--limit` (default 120) by `threshold`.

## Playing the dungeon crawler

Put a map file named `data.map` in the current directory and run:

```
tareas-game [MAP] [--seed N] [--no-delay]
```

Text appears one character at a time unless `--no-delay` is given; `--seed`
makes fights and events repeatable. You pick the next room by number, event
options by letter and combat upgrades by index. The game ends when a room
leads nowhere or the player dies.

The map file has these sections and ends with `FIN DE ARCHIVO`:

- `HABITACIONES`: a count, then for each room a line `<number> <name> (<type>)`
  and a description line. Types `COMBATE` and `EVENTO` start a fight or an event.
- `ARCOS`: a count, then lines `<from> -> <to>`; a room leads to at most three others.
- `ENEMIGOS`: a count, then lines of the form
  `Name|Vida: 10|Ataque: 3|Precision: 0.8|Probabilidad: 0.5`.
- `EVENTOS`: a count, a `&` line, then per event a name, a probability line,
  a description and options (an action line whose first three characters
  are skipped, a description, and an effect such as `-3 Vida`); events are
  separated by `&`.
- `MEJORAS DE COMBATE`: one upgrade per line, such as `+4 Vida` or `+0.1 Precision`.

From code:

```python
import random
from tareas.mapfile import load_map, Player, apply_effect
from tareas.game import Game

game_map = load_map("data.map")
game = Game(game_map, rng=random.Random(1), delay=0.0)
survived = game.play()
```

`parse_map(text)` parses a map from a string; malformed maps raise
`tareas.mapfile.MapFormatError`. `apply_effect(player, "+2 Ataque")` changes
a `Player` (by default 30 health, 7 attack, 0.95 accuracy, 3 recovery) and
returns the message describing the change. `Game` also accepts `player`,
`stdin` and `stdout` arguments, and offers `fight()`, `run_event()`,
`choose_next_room(node)`, `pick_enemy()`, `pick_event()` and
`roll_enemy_count()`. `TurnQueue` is the first-in, first-out queue that
orders turns in a fight.

## Reading a ride graph

```python
from tareas.rides import read_data, parse_data

graph = read_data("data1.txt")
print(graph.uber_locations())
print(graph.neighbours(1))

graph = parse_data("3 2 1\n0 1\n1 2\n2\n")
```

The first line gives the number of nodes, edges and ubers; then one
`origin destination` line per edge; then one line with the uber locations.
`AdjacencyList.add_edge` raises `IndexError` for an origin outside the graph,
and `add_uber` raises `ValueError` once the declared number of ubers is
recorded. To print the uber locations and every node's neighbours:

```
tareas-rides [DATA]
```

`DATA` defaults to `data1.txt`.

## What the package does not do

- The ride graph is only read and printed: there is no route search and no
  assignment of the nearest uber to a request.
- `tareas.imaging` reads image files through Pillow; the package has no
  image decoders of its own, only writers.