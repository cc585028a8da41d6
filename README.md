# attnmat

Computes an integer attention product

    result = (Q · Kᵀ) · V

for matrices read from standard input. The score matrix `Q · Kᵀ` is split
by rows across a number of workers, either threads or processes. The parent
then multiplies the gathered scores by `V` and prints the result.

## Installation

    pip install .

## Input format

The input is whitespace-separated integers. Each matrix is given as its row
count and column count, followed by its entries in row order:

    rQ cQ
    q11 q12 ...
    rK cK
    k11 k12 ...
    rV cV
    v11 v12 ...

The columns of Q must equal the columns of K, and the rows of V must equal
the rows of K. Negative dimensions are rejected. If a number is missing or
malformed, or the dimensions do not match, the command reports it on
standard error and exits with status 1.

## Commands

Each command takes the worker count as its first argument. The count is read
from the leading digits of that argument, so `4x` counts as 4. A count that
is missing or less than 1 is an error.

### `attention WORKERS`

Computes the score rows with a pool of `WORKERS` threads.

    $ printf '2 2\n1 0\n0 1\n2 2\n1 2\n3 4\n2 1\n1\n1\n' | attention 2
    0
    4 
    6 

The first output line is the elapsed time in whole milliseconds. Each
following line is one row of the result, and every value is followed by a
space.

### `attention-mp WORKERS`

Takes the same input and gives the same output as `attention`, but the
score rows are computed by a pool of `WORKERS` worker processes. This is also
available as `python -m attnmat.multiprocess WORKERS`.

### `multi-head-attention WORKERS`

The input begins with the number of heads. One Q/K/V problem follows for
each head. The heads are processed one after another. For each head:

1. The problem is sent as text to a worker command. By default this is
   `python -m attnmat.multiprocess WORKERS`, run with the current
   interpreter.
2. The latency line of the worker's output is dropped and the matrix that
   follows is read.
3. That matrix is added element by element into a running total.

The shape of the total comes from the first head: the rows of its Q and the
columns of its V. When reading a worker's output, blank lines are ignored,
extra rows and values are dropped, and missing values count as zero. Only the
summed matrix is printed, with no latency line.

## Library use

```python
from attnmat.core import parse_problem, format_matrix
from attnmat.threaded import attention_threaded
from attnmat.multiprocess import attention_processes

problem = parse_problem("2 2 1 0 0 1  2 2 1 2 3 4  2 1 1 1")
print(format_matrix(attention_threaded(problem, 2)))   # 4 / 6
print(format_matrix(attention_processes(problem, 2)))
```

`attnmat.core` also provides:

- `read_problem` and `read_matrix`, which work on token streams.
- `split_rows`, which gives the contiguous row ranges handed to the workers.
  Any remainder rows go one each to the first ranges.
- `score_rows` and `matmul`.
- `format_output`, which writes the latency line followed by the matrix.
- `parse_worker_count`.

`AttentionProblem.to_text()` renders a problem back into the input format.

Multiple heads:

```python
from attnmat.multihead import parse_heads, multi_head_attention

with open("input.txt") as f:
    heads = parse_heads(f.read())
total = multi_head_attention(heads, 4)
```

`multi_head_attention` and `run_head` take an optional `command` argument.
It is the argument list of the program to run for each head, in place of
`default_command(processes)`. `parse_worker_output` parses a worker's printed
output on its own.

Malformed input raises `attnmat.core.InputError`, which is a subclass of
`ValueError`.

## What it does not do

The product is plain integer arithmetic. There is no scaling and no softmax
of the scores. Values are Python integers, so they do not wrap on overflow.
`multi-head-attention` does not check the exit status of its worker command.
If a worker fails or prints nothing, that head contributes zeros.

## Tests

    pip install ".[test]"
    pytest