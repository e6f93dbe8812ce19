# A live script for: python -m liveloop examples/song.py --config examples/config.yaml
#
# Edit and save while it plays. A version that fails to load is ignored;
# a version that fails while playing is dropped in favour of the last one
# that worked.

bpm(110)

output.reset()

piano = output.instrument(0)
bass = output.instrument(33)
drums = output.instrument(0, channel=9)

bang(piano.pattern(60, "1=2 3 5 -- 4== 3 2="))
bang(bass.pattern(36, "0=== 3=== 5=== 4==="))

kick = Pattern(36, "x--- x--- x--- x-x-")


@bang
def hat (tick):

	note, _ = kick[tick]

	if note is not None:
		drums.play(note, 0.1)

	if tick % 2:
		drums.play(42, 0.05, velocity=60)


@close
def goodbye ():
	print("generation retired")
