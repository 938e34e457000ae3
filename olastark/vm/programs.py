"""Representative programs used by tests and the command line."""

ADD_MUL = "mov r0,8; mov r1,2; mov r2,3; add r3,r0,r1; mul r4,r3,r2; end"

MEMORY = "mov r0,8; mstore 0x100,r0; mov r1,2; mload r2,0x100; end"

MEMORY_MULTI = """
mov r0,8
mstore 0x100,r0
mov r1,0x25
mstore 0x200,r1
mload r2,0x100
add r2,r2,r1
mstore 0x100,r2
mload r3,0x200
mload r4,0x100
end
"""

FIBONACCI = """
mov r0,0
mov r1,1
mov r2,6
loop:
add r4,r0,r1
mov r0,r1
mov r1,r4
add r2,r2,-1
eq r5,r2,0
cjmp r5,done
jmp loop
done:
assert r1,13
end
"""

CALL_RET = """
mov r8,0x1000
mov r6,0x800
mstore 0xffe,r6
mov r0,5
call square
add r1,r0,1
end
square:
mul r0,r0,r0
ret
"""

RANGE_CHECK = "mov r0,0x8000; range_check r0; mov r1,0xffffffff; range_check r1; end"

BITWISE = "mov r0,0xf0f0; mov r1,0x0ff0; and r2,r0,r1; or r3,r0,r1; xor r4,r0,r1; end"

COMPARISON = "mov r0,100; mov r1,42; gte r2,r0,r1; gte r3,r1,r0; gte r4,r0,100; neq r5,r2,r3; end"

ALL_PROGRAMS = {
    "add_mul": ADD_MUL,
    "memory": MEMORY,
    "memory_multi": MEMORY_MULTI,
    "fibonacci": FIBONACCI,
    "call_ret": CALL_RET,
    "range_check": RANGE_CHECK,
    "bitwise": BITWISE,
    "comparison": COMPARISON,
}
